"""Key-material devices.

Protocol code never touches k_v or s_vb directly. It asks a device to perform
the few operations that need them, so the secrets can live in a hardware
wallet or another process. The ``*RamBorrowedDevice`` classes are the
in-memory implementations used by software wallets and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from . import crypto
from .enote_utils import (
    make_janus_anchor_special,
    make_sender_receiver_secret,
    make_uncontextualized_shared_key_receiver,
    make_view_tag,
)


class ViewIncomingKeyDevice(ABC):
    """Operations requiring the incoming view key k_v."""

    @abstractmethod
    def view_key_scalar_mult_ed25519(self, point: bytes) -> bytes:
        """k_v P"""

    @abstractmethod
    def view_key_scalar_mult_x25519(self, enote_ephemeral_pubkey: bytes) -> bytes:
        """s_sr = 8 k_v D_e"""

    @abstractmethod
    def make_janus_anchor_special(
        self,
        enote_ephemeral_pubkey: bytes,
        input_context: bytes,
        onetime_address: bytes,
        account_spend_pubkey: bytes,
    ) -> bytes:
        """anchor_sp = H_16[k_v](D_e, input_context, Ko, K_s)"""


class ViewBalanceSecretDevice(ABC):
    """Operations requiring the view-balance secret s_vb.

    For internal enotes s_vb takes the place of the uncontextualized
    sender-receiver secret.
    """

    @abstractmethod
    def make_internal_view_tag(self, input_context: bytes, onetime_address: bytes) -> bytes:
        """vt = H_3[s_vb](input_context, Ko)"""

    @abstractmethod
    def make_internal_sender_receiver_secret(
        self, enote_ephemeral_pubkey: bytes, input_context: bytes
    ) -> bytes:
        """s^ctx_sr = H_32[s_vb](D_e, input_context)"""


class ViewIncomingKeyRamBorrowedDevice(ViewIncomingKeyDevice):
    """k_v held in process memory."""

    def __init__(self, k_view: bytes) -> None:
        self._k_view = k_view

    def __repr__(self) -> str:
        return "ViewIncomingKeyRamBorrowedDevice(<redacted>)"

    def view_key_scalar_mult_ed25519(self, point: bytes) -> bytes:
        return crypto.scalarmult_key(point, crypto.sc_from_bytes(self._k_view))

    def view_key_scalar_mult_x25519(self, enote_ephemeral_pubkey: bytes) -> bytes:
        return make_uncontextualized_shared_key_receiver(self._k_view, enote_ephemeral_pubkey)

    def make_janus_anchor_special(
        self,
        enote_ephemeral_pubkey: bytes,
        input_context: bytes,
        onetime_address: bytes,
        account_spend_pubkey: bytes,
    ) -> bytes:
        return make_janus_anchor_special(
            enote_ephemeral_pubkey,
            input_context,
            onetime_address,
            self._k_view,
            account_spend_pubkey,
        )


class ViewBalanceSecretRamBorrowedDevice(ViewBalanceSecretDevice):
    """s_vb held in process memory."""

    def __init__(self, s_view_balance: bytes) -> None:
        self._s_view_balance = s_view_balance

    def __repr__(self) -> str:
        return "ViewBalanceSecretRamBorrowedDevice(<redacted>)"

    def make_internal_view_tag(self, input_context: bytes, onetime_address: bytes) -> bytes:
        return make_view_tag(self._s_view_balance, input_context, onetime_address)

    def make_internal_sender_receiver_secret(
        self, enote_ephemeral_pubkey: bytes, input_context: bytes
    ) -> bytes:
        return make_sender_receiver_secret(
            self._s_view_balance, enote_ephemeral_pubkey, input_context
        )
