"""Carrot SDK for Python.

Build and scan Carrot enotes, the output format of Monero's FCMP++
transactions. Senders turn payment proposals into enotes that only the
recipient can find and spend; recipients scan enotes with their view key
material and recover amount, payment ID and spend key extensions.

Quick Start:
    >>> from carrot_core import AccountSecrets, PaymentProposal, gen_janus_anchor
    >>> from carrot_core import get_output_proposal_normal, scan_enote
    >>> bob = AccountSecrets.generate()
    >>> tx_first_key_image = bytes(32)  # KI_1 of the spending transaction
    >>> proposal = PaymentProposal(
    ...     destination=bob.main_address(),
    ...     amount=1_000_000_000_000,  # 1 XMR in piconero
    ...     randomness=gen_janus_anchor(),
    ... )
    >>> output, pid_enc = get_output_proposal_normal(proposal, tx_first_key_image)
    >>> result = scan_enote(output.enote, bob, pid_enc)
    >>> result.amount
    1000000000000
"""

from __future__ import annotations

import logging

from .account import (
    AccountSecrets,
    can_open_onetime_address,
    gen_integrated_address,
    gen_main_address,
    gen_subaddress,
    make_index_extension_generator,
    make_integrated_address,
    make_main_address,
    make_subaddress,
    make_subaddress_scalar,
)
from .config import CARROT_MAX_TX_OUTPUTS, CARROT_MIN_TX_OUTPUTS, SDK_VERSION
from .devices import (
    ViewBalanceSecretDevice,
    ViewBalanceSecretRamBorrowedDevice,
    ViewIncomingKeyDevice,
    ViewIncomingKeyRamBorrowedDevice,
)
from .enote_scan import (
    try_scan_coinbase_enote,
    try_scan_enote_external,
    try_scan_enote_internal,
)
from .enote_utils import gen_janus_anchor, gen_payment_id
from .exceptions import (
    CarrotEncodingError,
    CarrotError,
    CarrotFinalizationError,
    CarrotKeyDeviceError,
    CarrotProposalError,
)
from .guarded import GuardedSecret
from .hashing import x25519_pubkey_gen
from .output_set import (
    finalize_payment_proposals,
    get_additional_output_proposal,
    get_additional_output_type,
    get_output_enote_proposals,
)
from .payment_proposal import (
    gen_coinbase_enote,
    gen_enote,
    gen_payment_proposal,
    get_coinbase_output_proposal,
    get_enote_ephemeral_pubkey,
    get_output_proposal_internal,
    get_output_proposal_normal,
    get_output_proposal_special,
)
from .types import (
    AdditionalOutputType,
    AnyPaymentProposal,
    CoinbaseEnote,
    CoinbaseEnoteScanResult,
    Destination,
    Enote,
    EnoteScanResult,
    EnoteType,
    OutputEnoteProposal,
    OutputSet,
    PaymentProposal,
    SelfSendPaymentProposal,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = SDK_VERSION
__all__ = [
    # Account
    "AccountSecrets",
    "make_main_address",
    "make_subaddress",
    "make_integrated_address",
    "make_index_extension_generator",
    "make_subaddress_scalar",
    "can_open_onetime_address",
    # Devices
    "ViewIncomingKeyDevice",
    "ViewBalanceSecretDevice",
    "ViewIncomingKeyRamBorrowedDevice",
    "ViewBalanceSecretRamBorrowedDevice",
    # Builder
    "get_enote_ephemeral_pubkey",
    "get_coinbase_output_proposal",
    "get_output_proposal_normal",
    "get_output_proposal_special",
    "get_output_proposal_internal",
    # Scanner
    "try_scan_enote_external",
    "try_scan_enote_internal",
    "try_scan_coinbase_enote",
    "scan_enote",
    # Finalizer
    "get_additional_output_type",
    "get_additional_output_proposal",
    "finalize_payment_proposals",
    "get_output_enote_proposals",
    # Random generators
    "gen_main_address",
    "gen_subaddress",
    "gen_integrated_address",
    "gen_janus_anchor",
    "gen_payment_id",
    "gen_payment_proposal",
    "gen_enote",
    "gen_coinbase_enote",
    "x25519_pubkey_gen",
    # Types - Enums
    "EnoteType",
    "AdditionalOutputType",
    # Types - Models
    "Destination",
    "PaymentProposal",
    "SelfSendPaymentProposal",
    "AnyPaymentProposal",
    "Enote",
    "CoinbaseEnote",
    "OutputEnoteProposal",
    "OutputSet",
    "EnoteScanResult",
    "CoinbaseEnoteScanResult",
    "GuardedSecret",
    # Constants
    "CARROT_MIN_TX_OUTPUTS",
    "CARROT_MAX_TX_OUTPUTS",
    # Exceptions
    "CarrotError",
    "CarrotProposalError",
    "CarrotFinalizationError",
    "CarrotKeyDeviceError",
    "CarrotEncodingError",
    # Version
    "__version__",
]


def scan_enote(
    enote: Enote,
    account: AccountSecrets,
    encrypted_payment_id: bytes | None = None,
) -> EnoteScanResult | None:
    """Quick helper to scan one enote with a full account.

    Tries the internal path first, then the external path. Wallets scanning
    many enotes per transaction should compute s_sr once per D_e and call
    :func:`try_scan_enote_external` directly.

    Args:
        enote: Candidate enote.
        account: Secrets of the scanning account.
        encrypted_payment_id: The transaction's published pid_enc, if any.

    Returns:
        EnoteScanResult if the enote is ours, None otherwise.
    """
    result = try_scan_enote_internal(enote, account.s_view_balance_dev)
    if result is not None:
        return result

    k_view_dev = account.k_view_dev
    with GuardedSecret(
        k_view_dev.view_key_scalar_mult_x25519(enote.enote_ephemeral_pubkey)
    ) as s_sender_receiver_unctx:
        return try_scan_enote_external(
            enote,
            encrypted_payment_id,
            s_sender_receiver_unctx,
            k_view_dev,
            account.account_spend_pubkey,
        )
