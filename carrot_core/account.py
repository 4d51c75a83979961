"""Account secrets, addresses and subaddresses.

Every Carrot wallet secret hangs off one 32-byte master secret s_m::

    k_ps = H_n[s_m]("prove-spend")          prove-spend key
    s_vb = H_32[s_m]("view-balance")        view-balance secret
    k_gi = H_n[s_vb]("generate-image")      generate-image key
    k_v  = H_n[s_vb]("incoming view")       incoming view key
    s_ga = H_32[s_vb]("generate-address")   generate-address secret

    K_s = k_gi G + k_ps T                   account spend pubkey
    K_v = k_v K_s                           account view pubkey

The main address is (K_s, k_v G). Subaddress j = (j_major, j_minor) is
(k^j K_s, k^j K_v) with k^j derived from s_ga and the index.
"""

from __future__ import annotations

import logging

from pydantic import Field

from . import crypto
from .config import (
    DOMAIN_SEP_ADDRESS_INDEX_GEN,
    DOMAIN_SEP_GENERATE_ADDRESS_SECRET,
    DOMAIN_SEP_GENERATE_IMAGE_KEY,
    DOMAIN_SEP_INCOMING_VIEW_KEY,
    DOMAIN_SEP_PROVE_SPEND_KEY,
    DOMAIN_SEP_SUBADDRESS_SCALAR,
    DOMAIN_SEP_VIEW_BALANCE_SECRET,
    KEY_BYTES,
)
from .devices import ViewBalanceSecretRamBorrowedDevice, ViewIncomingKeyRamBorrowedDevice
from .enote_utils import gen_payment_id
from .hashing import derive_bytes_32, derive_scalar, random_bytes, random_point
from .types import CarrotModel, Destination, Key32

logger = logging.getLogger(__name__)

_NO_KEY = b""


def _u32(value: int) -> bytes:
    return value.to_bytes(4, "little")


# =============================================================================
# Address derivations
# =============================================================================


def make_index_extension_generator(
    s_generate_address: bytes, j_major: int, j_minor: int
) -> bytes:
    """s^j_gen = H_32[s_ga](j_major, j_minor)"""
    return derive_bytes_32(
        s_generate_address, DOMAIN_SEP_ADDRESS_INDEX_GEN, _u32(j_major), _u32(j_minor)
    )


def make_subaddress_scalar(
    account_spend_pubkey: bytes, s_address_generator: bytes, j_major: int, j_minor: int
) -> bytes:
    """k^j_subscal = H_n[s^j_gen](K_s, j_major, j_minor)"""
    return crypto.sc_to_bytes(
        derive_scalar(
            s_address_generator,
            DOMAIN_SEP_SUBADDRESS_SCALAR,
            account_spend_pubkey,
            _u32(j_major),
            _u32(j_minor),
        )
    )


def make_main_address(account_spend_pubkey: bytes, main_address_view_pubkey: bytes) -> Destination:
    return Destination(
        address_spend_pubkey=account_spend_pubkey,
        address_view_pubkey=main_address_view_pubkey,
        is_subaddress=False,
    )


def make_subaddress(
    account_spend_pubkey: bytes,
    account_view_pubkey: bytes,
    s_generate_address: bytes,
    j_major: int,
    j_minor: int,
) -> Destination:
    """K^j_s = k^j K_s, K^j_v = k^j K_v"""
    s_gen = make_index_extension_generator(s_generate_address, j_major, j_minor)
    k_sub = crypto.sc_from_bytes(
        make_subaddress_scalar(account_spend_pubkey, s_gen, j_major, j_minor)
    )
    return Destination(
        address_spend_pubkey=crypto.scalarmult_key(account_spend_pubkey, k_sub),
        address_view_pubkey=crypto.scalarmult_key(account_view_pubkey, k_sub),
        is_subaddress=True,
    )


def make_integrated_address(
    account_spend_pubkey: bytes, main_address_view_pubkey: bytes, payment_id: bytes
) -> Destination:
    return Destination(
        address_spend_pubkey=account_spend_pubkey,
        address_view_pubkey=main_address_view_pubkey,
        is_subaddress=False,
        payment_id=payment_id,
    )


# =============================================================================
# Random addresses
# =============================================================================


def gen_main_address() -> Destination:
    return Destination(
        address_spend_pubkey=random_point(),
        address_view_pubkey=random_point(),
        is_subaddress=False,
    )


def gen_subaddress() -> Destination:
    return Destination(
        address_spend_pubkey=random_point(),
        address_view_pubkey=random_point(),
        is_subaddress=True,
    )


def gen_integrated_address() -> Destination:
    return Destination(
        address_spend_pubkey=random_point(),
        address_view_pubkey=random_point(),
        is_subaddress=False,
        payment_id=gen_payment_id(),
    )


# =============================================================================
# Spendability
# =============================================================================


def can_open_onetime_address(
    k_prove_spend: bytes,
    k_generate_image: bytes,
    subaddress_scalar: bytes,
    sender_extension_g: bytes,
    sender_extension_t: bytes,
    onetime_address: bytes,
) -> bool:
    """Ko ?= (k^o_g + k^j k_gi) G + (k^o_t + k^j k_ps) T

    Pass a subaddress scalar of 1 for the main address.
    """
    k_sub = crypto.sc_from_bytes(subaddress_scalar)
    x = crypto.sc_muladd(
        k_sub, crypto.sc_from_bytes(k_generate_image), crypto.sc_from_bytes(sender_extension_g)
    )
    y = crypto.sc_muladd(
        k_sub, crypto.sc_from_bytes(k_prove_spend), crypto.sc_from_bytes(sender_extension_t)
    )
    return crypto.add_keys2(x, y, crypto.T) == onetime_address


# =============================================================================
# Account
# =============================================================================


class AccountSecrets(CarrotModel):
    """The full key hierarchy of one Carrot account.

    Build with :meth:`from_master_secret` or :meth:`generate`. Secret fields
    are excluded from ``repr``.
    """

    s_master: Key32 = Field(..., description="s_m", repr=False)
    k_prove_spend: Key32 = Field(..., description="k_ps", repr=False)
    s_view_balance: Key32 = Field(..., description="s_vb", repr=False)
    k_generate_image: Key32 = Field(..., description="k_gi", repr=False)
    k_view: Key32 = Field(..., description="k_v", repr=False)
    s_generate_address: Key32 = Field(..., description="s_ga", repr=False)
    account_spend_pubkey: Key32 = Field(..., description="K_s")
    account_view_pubkey: Key32 = Field(..., description="K_v")
    main_address_view_pubkey: Key32 = Field(..., description="K^0_v = k_v G")

    @classmethod
    def from_master_secret(cls, s_master: bytes) -> AccountSecrets:
        k_prove_spend = derive_scalar(s_master, DOMAIN_SEP_PROVE_SPEND_KEY)
        s_view_balance = derive_bytes_32(s_master, DOMAIN_SEP_VIEW_BALANCE_SECRET)
        k_generate_image = derive_scalar(s_view_balance, DOMAIN_SEP_GENERATE_IMAGE_KEY)
        k_view = derive_scalar(s_view_balance, DOMAIN_SEP_INCOMING_VIEW_KEY)
        s_generate_address = derive_bytes_32(s_view_balance, DOMAIN_SEP_GENERATE_ADDRESS_SECRET)

        account_spend_pubkey = crypto.add_keys2(k_generate_image, k_prove_spend, crypto.T)
        return cls(
            s_master=s_master,
            k_prove_spend=crypto.sc_to_bytes(k_prove_spend),
            s_view_balance=s_view_balance,
            k_generate_image=crypto.sc_to_bytes(k_generate_image),
            k_view=crypto.sc_to_bytes(k_view),
            s_generate_address=s_generate_address,
            account_spend_pubkey=account_spend_pubkey,
            account_view_pubkey=crypto.scalarmult_key(account_spend_pubkey, k_view),
            main_address_view_pubkey=crypto.scalarmult_base(k_view),
        )

    @classmethod
    def generate(cls) -> AccountSecrets:
        return cls.from_master_secret(random_bytes(KEY_BYTES))

    # ----- devices -----

    @property
    def k_view_dev(self) -> ViewIncomingKeyRamBorrowedDevice:
        return ViewIncomingKeyRamBorrowedDevice(self.k_view)

    @property
    def s_view_balance_dev(self) -> ViewBalanceSecretRamBorrowedDevice:
        return ViewBalanceSecretRamBorrowedDevice(self.s_view_balance)

    # ----- addresses -----

    def main_address(self) -> Destination:
        return make_main_address(self.account_spend_pubkey, self.main_address_view_pubkey)

    def integrated_address(self, payment_id: bytes) -> Destination:
        return make_integrated_address(
            self.account_spend_pubkey, self.main_address_view_pubkey, payment_id
        )

    def subaddress(self, j_major: int, j_minor: int) -> Destination:
        """Address at index j; (0, 0) is the main address."""
        if j_major == 0 and j_minor == 0:
            return self.main_address()
        logger.debug("Deriving subaddress (%d, %d)", j_major, j_minor)
        return make_subaddress(
            self.account_spend_pubkey,
            self.account_view_pubkey,
            self.s_generate_address,
            j_major,
            j_minor,
        )

    def subaddress_scalar(self, j_major: int, j_minor: int) -> bytes:
        """k^j_subscal, or 1 for the main address."""
        if j_major == 0 and j_minor == 0:
            return crypto.sc_to_bytes(1)
        s_gen = make_index_extension_generator(self.s_generate_address, j_major, j_minor)
        return make_subaddress_scalar(self.account_spend_pubkey, s_gen, j_major, j_minor)

    def can_open(
        self,
        subaddress_scalar: bytes,
        sender_extension_g: bytes,
        sender_extension_t: bytes,
        onetime_address: bytes,
    ) -> bool:
        return can_open_onetime_address(
            self.k_prove_spend,
            self.k_generate_image,
            subaddress_scalar,
            sender_extension_g,
            sender_extension_t,
            onetime_address,
        )
