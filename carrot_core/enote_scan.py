"""Enote Scanner.

Given a candidate enote and the wallet's key material, decide whether the
enote is ours and recover what is needed to spend it.

Most enotes on chain belong to someone else, so "not mine" is an ordinary
result and is returned as ``None``. The view tag is checked first; only
enotes that pass it cost more than one short hash.
"""

from __future__ import annotations

import logging

from . import crypto
from .devices import ViewBalanceSecretDevice, ViewIncomingKeyDevice
from .enote_utils import (
    decrypt_anchor,
    decrypt_payment_id,
    make_input_context,
    make_input_context_coinbase,
    make_onetime_address_extension_g,
    make_onetime_address_extension_t,
    make_sender_receiver_secret,
    recover_address_spend_pubkey,
    try_get_amount,
    verify_janus_protection,
    verify_view_tag,
)
from .guarded import GuardedSecret
from .types import CoinbaseEnote, CoinbaseEnoteScanResult, Enote, EnoteScanResult

logger = logging.getLogger(__name__)


def _try_scan_enote_core(
    enote: Enote, encrypted_payment_id: bytes | None, s_sender_receiver: bytes
) -> tuple[EnoteScanResult, bytes] | None:
    """Steps shared by internal and external scans once s^ctx_sr is known.

    Returns:
        (scan result, decrypted janus anchor), or None if the amount
        commitment does not open under either enote type.
    """
    opened = try_get_amount(
        s_sender_receiver, enote.amount_enc, enote.onetime_address, enote.amount_commitment
    )
    if opened is None:
        logger.debug("Amount commitment did not open, rejecting enote")
        return None
    enote_type, amount, amount_blinding_factor = opened

    if not crypto.is_valid_point(enote.onetime_address):
        logger.debug("Onetime address is not a valid point, rejecting enote")
        return None

    sender_extension_g = make_onetime_address_extension_g(
        s_sender_receiver, enote.amount_commitment
    )
    sender_extension_t = make_onetime_address_extension_t(
        s_sender_receiver, enote.amount_commitment
    )
    address_spend_pubkey = recover_address_spend_pubkey(
        enote.onetime_address, s_sender_receiver, enote.amount_commitment
    )

    payment_id = None
    if encrypted_payment_id is not None:
        payment_id = decrypt_payment_id(
            encrypted_payment_id, s_sender_receiver, enote.onetime_address
        )

    nominal_anchor = decrypt_anchor(enote.anchor_enc, s_sender_receiver, enote.onetime_address)

    result = EnoteScanResult(
        sender_extension_g=sender_extension_g,
        sender_extension_t=sender_extension_t,
        address_spend_pubkey=address_spend_pubkey,
        amount=amount,
        amount_blinding_factor=amount_blinding_factor,
        payment_id=payment_id,
        enote_type=enote_type,
    )
    return result, nominal_anchor


def try_scan_enote_external(
    enote: Enote,
    encrypted_payment_id: bytes | None,
    s_sender_receiver_unctx: bytes,
    k_view_dev: ViewIncomingKeyDevice,
    account_spend_pubkey: bytes,
) -> EnoteScanResult | None:
    """Scan an enote someone else may have sent us.

    Args:
        enote: Candidate enote.
        encrypted_payment_id: The transaction's published pid_enc, if any.
        s_sender_receiver_unctx: s_sr = 8 k_v D_e, usually computed once per
            transaction with ``k_view_dev.view_key_scalar_mult_x25519``.
        k_view_dev: Incoming view key device, used for Janus verification.
        account_spend_pubkey: K_s of the scanning account.

    Returns:
        The recovered enote details, or None if the enote is not ours or
        fails Janus verification. ``address_spend_pubkey`` is the address
        the enote paid; look it up in the subaddress table to learn j.
    """
    input_context = make_input_context(enote.tx_first_key_image)

    if not verify_view_tag(
        s_sender_receiver_unctx, input_context, enote.onetime_address, enote.view_tag
    ):
        return None

    with GuardedSecret(
        make_sender_receiver_secret(
            s_sender_receiver_unctx, enote.enote_ephemeral_pubkey, input_context
        )
    ) as s_ctx:
        scanned = _try_scan_enote_core(enote, encrypted_payment_id, s_ctx)
    if scanned is None:
        return None
    result, nominal_anchor = scanned

    passed, payment_id = verify_janus_protection(
        input_context,
        enote.onetime_address,
        k_view_dev,
        account_spend_pubkey,
        result.address_spend_pubkey,
        enote.enote_ephemeral_pubkey,
        nominal_anchor,
        result.payment_id,
    )
    if not passed:
        logger.warning("Enote failed Janus verification, possible Janus attack")
        return None

    return result.model_copy(update={"payment_id": payment_id})


def try_scan_enote_internal(
    enote: Enote, s_view_balance_dev: ViewBalanceSecretDevice
) -> EnoteScanResult | None:
    """Scan an enote the wallet may have sent to itself with s_vb.

    No Janus verification: only the holder of s_vb can build such an enote.
    """
    input_context = make_input_context(enote.tx_first_key_image)

    view_tag = s_view_balance_dev.make_internal_view_tag(input_context, enote.onetime_address)
    if view_tag != enote.view_tag:
        return None

    with GuardedSecret(
        s_view_balance_dev.make_internal_sender_receiver_secret(
            enote.enote_ephemeral_pubkey, input_context
        )
    ) as s_ctx:
        scanned = _try_scan_enote_core(enote, None, s_ctx)
    if scanned is None:
        return None
    result, _ = scanned

    return result.model_copy(update={"is_internal": True})


def try_scan_coinbase_enote(
    enote: CoinbaseEnote,
    s_sender_receiver_unctx: bytes,
    k_view_dev: ViewIncomingKeyDevice,
    account_spend_pubkey: bytes,
) -> CoinbaseEnoteScanResult | None:
    """Scan a coinbase enote.

    Only the account's main address is considered. A coinbase enote to any
    other spend pubkey is rejected, even one of our own subaddresses.
    """
    input_context = make_input_context_coinbase(enote.block_index)

    if not verify_view_tag(
        s_sender_receiver_unctx, input_context, enote.onetime_address, enote.view_tag
    ):
        return None
    if not crypto.is_valid_point(enote.onetime_address):
        logger.debug("Onetime address is not a valid point, rejecting enote")
        return None

    amount_commitment = crypto.zero_commit(enote.amount)

    with GuardedSecret(
        make_sender_receiver_secret(
            s_sender_receiver_unctx, enote.enote_ephemeral_pubkey, input_context
        )
    ) as s_ctx:
        address_spend_pubkey = recover_address_spend_pubkey(
            enote.onetime_address, s_ctx, amount_commitment
        )
        if address_spend_pubkey != account_spend_pubkey:
            logger.debug("Coinbase enote not addressed to main address, rejecting")
            return None

        sender_extension_g = make_onetime_address_extension_g(s_ctx, amount_commitment)
        sender_extension_t = make_onetime_address_extension_t(s_ctx, amount_commitment)
        nominal_anchor = decrypt_anchor(enote.anchor_enc, s_ctx, enote.onetime_address)

    passed, _ = verify_janus_protection(
        input_context,
        enote.onetime_address,
        k_view_dev,
        account_spend_pubkey,
        address_spend_pubkey,
        enote.enote_ephemeral_pubkey,
        nominal_anchor,
        None,
    )
    if not passed:
        logger.warning("Coinbase enote failed Janus verification, possible Janus attack")
        return None

    return CoinbaseEnoteScanResult(
        sender_extension_g=sender_extension_g,
        sender_extension_t=sender_extension_t,
        address_spend_pubkey=address_spend_pubkey,
        amount=enote.amount,
    )
