"""Enote derivations shared by the builder and the scanner.

Notation follows the Carrot write-up: ``s_sr`` is the uncontextualized
sender-receiver secret, ``s^ctx_sr`` the contextualized one, ``D_e`` the enote
ephemeral pubkey (X25519), ``Ko`` the onetime address and ``C_a`` the amount
commitment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from . import crypto
from .config import (
    BLOCK_INDEX_BYTES,
    DOMAIN_SEP_AMOUNT_BLINDING_FACTOR,
    DOMAIN_SEP_ENCRYPTION_MASK_AMOUNT,
    DOMAIN_SEP_ENCRYPTION_MASK_ANCHOR,
    DOMAIN_SEP_ENCRYPTION_MASK_PAYMENT_ID,
    DOMAIN_SEP_EPHEMERAL_PRIVKEY,
    DOMAIN_SEP_INPUT_CONTEXT_COINBASE,
    DOMAIN_SEP_INPUT_CONTEXT_RINGCT,
    DOMAIN_SEP_JANUS_ANCHOR_SPECIAL,
    DOMAIN_SEP_ONETIME_EXTENSION_G,
    DOMAIN_SEP_ONETIME_EXTENSION_T,
    DOMAIN_SEP_SENDER_RECEIVER_SECRET,
    DOMAIN_SEP_VIEW_TAG,
    JANUS_ANCHOR_BYTES,
    KEY_BYTES,
    NULL_PAYMENT_ID,
    PAYMENT_ID_BYTES,
)
from .exceptions import CarrotEncodingError
from .hashing import (
    derive_bytes_3,
    derive_bytes_8,
    derive_bytes_16,
    derive_bytes_32,
    derive_scalar,
    random_bytes,
)
from .types import EnoteType

if TYPE_CHECKING:
    from .devices import ViewIncomingKeyDevice

_NO_KEY = b""


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


# =============================================================================
# Input context
# =============================================================================


def make_input_context(first_key_image: bytes) -> bytes:
    """input_context = "R" || KI_1"""
    if len(first_key_image) != KEY_BYTES:
        raise CarrotEncodingError("Key image must be 32 bytes")
    return DOMAIN_SEP_INPUT_CONTEXT_RINGCT + bytes(first_key_image)


def make_input_context_coinbase(block_index: int) -> bytes:
    """input_context = "C" || IntToBytes64(block_index)"""
    return DOMAIN_SEP_INPUT_CONTEXT_COINBASE + block_index.to_bytes(BLOCK_INDEX_BYTES, "little")


# =============================================================================
# Enote ephemeral keys and ECDH
# =============================================================================


def make_enote_ephemeral_privkey(
    anchor_norm: bytes,
    input_context: bytes,
    address_spend_pubkey: bytes,
    address_view_pubkey: bytes,
    payment_id: bytes | None,
) -> bytes:
    """d_e = H_n(anchor_norm, input_context, K^j_s, K^j_v, pid)"""
    d_e = derive_scalar(
        _NO_KEY,
        DOMAIN_SEP_EPHEMERAL_PRIVKEY,
        anchor_norm,
        input_context,
        address_spend_pubkey,
        address_view_pubkey,
        payment_id if payment_id is not None else NULL_PAYMENT_ID,
    )
    return crypto.sc_to_bytes(d_e)


def make_enote_ephemeral_pubkey_cryptonote(enote_ephemeral_privkey: bytes) -> bytes:
    """D_e = d_e B"""
    return crypto.x25519_scmul_base(crypto.sc_from_bytes(enote_ephemeral_privkey))


def make_enote_ephemeral_pubkey_subaddress(
    enote_ephemeral_privkey: bytes, address_spend_pubkey: bytes
) -> bytes:
    """D_e = d_e ConvertPointE(K^j_s)"""
    return crypto.x25519_scmul_key(
        crypto.sc_from_bytes(enote_ephemeral_privkey),
        crypto.edwards_to_montgomery(address_spend_pubkey),
    )


def make_enote_ephemeral_pubkey(
    enote_ephemeral_privkey: bytes, address_spend_pubkey: bytes, is_subaddress: bool
) -> bytes:
    if is_subaddress:
        return make_enote_ephemeral_pubkey_subaddress(
            enote_ephemeral_privkey, address_spend_pubkey
        )
    return make_enote_ephemeral_pubkey_cryptonote(enote_ephemeral_privkey)


def make_uncontextualized_shared_key_sender(
    enote_ephemeral_privkey: bytes, address_view_pubkey: bytes
) -> bytes:
    """s_sr = 8 d_e ConvertPointE(K^j_v)"""
    return crypto.x25519_scmul_key(
        8 * crypto.sc_from_bytes(enote_ephemeral_privkey),
        crypto.edwards_to_montgomery(address_view_pubkey),
    )


def make_uncontextualized_shared_key_receiver(
    k_view: bytes, enote_ephemeral_pubkey: bytes
) -> bytes:
    """s_sr = 8 k_v D_e"""
    return crypto.x25519_scmul_key(8 * crypto.sc_from_bytes(k_view), enote_ephemeral_pubkey)


def make_sender_receiver_secret(
    s_sender_receiver_unctx: bytes, enote_ephemeral_pubkey: bytes, input_context: bytes
) -> bytes:
    """s^ctx_sr = H_32[s_sr](D_e, input_context)"""
    return derive_bytes_32(
        s_sender_receiver_unctx,
        DOMAIN_SEP_SENDER_RECEIVER_SECRET,
        enote_ephemeral_pubkey,
        input_context,
    )


# =============================================================================
# View tags
# =============================================================================


def make_view_tag(
    s_sender_receiver_unctx: bytes, input_context: bytes, onetime_address: bytes
) -> bytes:
    """vt = H_3[s_sr](input_context, Ko)"""
    return derive_bytes_3(
        s_sender_receiver_unctx, DOMAIN_SEP_VIEW_TAG, input_context, onetime_address
    )


def verify_view_tag(
    s_sender_receiver_unctx: bytes,
    input_context: bytes,
    onetime_address: bytes,
    view_tag: bytes,
) -> bool:
    return make_view_tag(s_sender_receiver_unctx, input_context, onetime_address) == view_tag


# =============================================================================
# Onetime addresses
# =============================================================================


def make_onetime_address_extension_g(s_sender_receiver: bytes, amount_commitment: bytes) -> bytes:
    """k^o_g = H_n[s^ctx_sr]("..g..", C_a)"""
    return crypto.sc_to_bytes(
        derive_scalar(s_sender_receiver, DOMAIN_SEP_ONETIME_EXTENSION_G, amount_commitment)
    )


def make_onetime_address_extension_t(s_sender_receiver: bytes, amount_commitment: bytes) -> bytes:
    """k^o_t = H_n[s^ctx_sr]("..t..", C_a)"""
    return crypto.sc_to_bytes(
        derive_scalar(s_sender_receiver, DOMAIN_SEP_ONETIME_EXTENSION_T, amount_commitment)
    )


def make_onetime_address_extension_pubkey(
    s_sender_receiver: bytes, amount_commitment: bytes
) -> bytes:
    """K^o_ext = k^o_g G + k^o_t T"""
    k_g = make_onetime_address_extension_g(s_sender_receiver, amount_commitment)
    k_t = make_onetime_address_extension_t(s_sender_receiver, amount_commitment)
    return crypto.add_keys2(crypto.sc_from_bytes(k_g), crypto.sc_from_bytes(k_t), crypto.T)


def make_onetime_address(
    address_spend_pubkey: bytes, s_sender_receiver: bytes, amount_commitment: bytes
) -> bytes:
    """Ko = K^j_s + K^o_ext"""
    return crypto.point_add(
        address_spend_pubkey,
        make_onetime_address_extension_pubkey(s_sender_receiver, amount_commitment),
    )


def recover_address_spend_pubkey(
    onetime_address: bytes, s_sender_receiver: bytes, amount_commitment: bytes
) -> bytes:
    """K^j_s = Ko - K^o_ext"""
    return crypto.point_sub(
        onetime_address,
        make_onetime_address_extension_pubkey(s_sender_receiver, amount_commitment),
    )


# =============================================================================
# Amounts
# =============================================================================


def make_amount_blinding_factor(s_sender_receiver: bytes, enote_type: EnoteType) -> bytes:
    """k_a = H_n[s^ctx_sr](enote_type)"""
    return crypto.sc_to_bytes(
        derive_scalar(
            s_sender_receiver, DOMAIN_SEP_AMOUNT_BLINDING_FACTOR, bytes([int(enote_type)])
        )
    )


def _amount_mask(s_sender_receiver: bytes, onetime_address: bytes) -> bytes:
    # m_a = H_8[s^ctx_sr](Ko)
    return derive_bytes_8(s_sender_receiver, DOMAIN_SEP_ENCRYPTION_MASK_AMOUNT, onetime_address)


def encrypt_amount(amount: int, s_sender_receiver: bytes, onetime_address: bytes) -> bytes:
    """a_enc = a XOR m_a"""
    return _xor(amount.to_bytes(8, "little"), _amount_mask(s_sender_receiver, onetime_address))


def decrypt_amount(amount_enc: bytes, s_sender_receiver: bytes, onetime_address: bytes) -> int:
    return int.from_bytes(
        _xor(amount_enc, _amount_mask(s_sender_receiver, onetime_address)), "little"
    )


def try_get_amount(
    s_sender_receiver: bytes,
    amount_enc: bytes,
    onetime_address: bytes,
    amount_commitment: bytes,
) -> tuple[EnoteType, int, bytes] | None:
    """Open C_a under each enote type in turn.

    Returns:
        (enote_type, amount, amount_blinding_factor), or None if neither
        PAYMENT nor CHANGE reproduces the commitment.
    """
    amount = decrypt_amount(amount_enc, s_sender_receiver, onetime_address)

    for enote_type in (EnoteType.PAYMENT, EnoteType.CHANGE):
        amount_blinding_factor = make_amount_blinding_factor(s_sender_receiver, enote_type)
        recomputed = crypto.commit(amount, crypto.sc_from_bytes(amount_blinding_factor))
        if recomputed == amount_commitment:
            return enote_type, amount, amount_blinding_factor

    return None


# =============================================================================
# Payment IDs and Janus anchors
# =============================================================================


def encrypt_payment_id(
    payment_id: bytes | None, s_sender_receiver: bytes, onetime_address: bytes
) -> bytes:
    """pid_enc = pid XOR m_pid"""
    mask = derive_bytes_8(
        s_sender_receiver, DOMAIN_SEP_ENCRYPTION_MASK_PAYMENT_ID, onetime_address
    )
    return _xor(payment_id if payment_id is not None else NULL_PAYMENT_ID, mask)


def decrypt_payment_id(
    encrypted_payment_id: bytes, s_sender_receiver: bytes, onetime_address: bytes
) -> bytes | None:
    payment_id = encrypt_payment_id(encrypted_payment_id, s_sender_receiver, onetime_address)
    return None if payment_id == NULL_PAYMENT_ID else payment_id


def encrypt_anchor(anchor: bytes, s_sender_receiver: bytes, onetime_address: bytes) -> bytes:
    """anchor_enc = anchor XOR m_anchor"""
    mask = derive_bytes_16(s_sender_receiver, DOMAIN_SEP_ENCRYPTION_MASK_ANCHOR, onetime_address)
    return _xor(anchor, mask)


def decrypt_anchor(anchor_enc: bytes, s_sender_receiver: bytes, onetime_address: bytes) -> bytes:
    return encrypt_anchor(anchor_enc, s_sender_receiver, onetime_address)


def make_janus_anchor_special(
    enote_ephemeral_pubkey: bytes,
    input_context: bytes,
    onetime_address: bytes,
    k_view: bytes,
    account_spend_pubkey: bytes,
) -> bytes:
    """anchor_sp = H_16[k_v](D_e, input_context, Ko, K_s)"""
    return derive_bytes_16(
        k_view,
        DOMAIN_SEP_JANUS_ANCHOR_SPECIAL,
        enote_ephemeral_pubkey,
        input_context,
        onetime_address,
        account_spend_pubkey,
    )


def gen_janus_anchor() -> bytes:
    return random_bytes(JANUS_ANCHOR_BYTES)


def gen_payment_id() -> bytes:
    return random_bytes(PAYMENT_ID_BYTES)


# =============================================================================
# Janus protection
# =============================================================================


def verify_external_janus_protection(
    nominal_anchor: bytes,
    input_context: bytes,
    nominal_address_spend_pubkey: bytes,
    nominal_address_view_pubkey: bytes,
    is_subaddress: bool,
    nominal_payment_id: bytes | None,
    enote_ephemeral_pubkey: bytes,
) -> bool:
    """D_e ?= D_e' where d_e' = H_n(anchor', input_context, K^j_s', K^j_v', pid')"""
    enote_ephemeral_privkey = make_enote_ephemeral_privkey(
        nominal_anchor,
        input_context,
        nominal_address_spend_pubkey,
        nominal_address_view_pubkey,
        nominal_payment_id,
    )
    recomputed = make_enote_ephemeral_pubkey(
        enote_ephemeral_privkey, nominal_address_spend_pubkey, is_subaddress
    )
    return recomputed == enote_ephemeral_pubkey


def verify_janus_protection(
    input_context: bytes,
    onetime_address: bytes,
    k_view_dev: ViewIncomingKeyDevice,
    account_spend_pubkey: bytes,
    nominal_address_spend_pubkey: bytes,
    enote_ephemeral_pubkey: bytes,
    nominal_anchor: bytes,
    nominal_payment_id: bytes | None,
) -> tuple[bool, bytes | None]:
    """Check that an enote's anchor is what an honest sender would have produced.

    A legitimate enote either came from the external path, in which case
    D_e can be rebuilt from the decrypted anchor and the recovered address,
    or from the special self-send path, in which case the anchor is the
    special anchor only the owner of k_v can compute.

    Returns:
        (passed, payment_id). The payment ID is the one that verified: the
        nominal one, or None if the sender encrypted a pid the destination
        never asked for.
    """
    is_subaddress = nominal_address_spend_pubkey != account_spend_pubkey

    # K^j_v' = k_v K^j_s' for subaddresses, k_v G for the main address
    if is_subaddress:
        nominal_address_view_pubkey = k_view_dev.view_key_scalar_mult_ed25519(
            nominal_address_spend_pubkey
        )
    else:
        nominal_address_view_pubkey = k_view_dev.view_key_scalar_mult_ed25519(crypto.G)

    if verify_external_janus_protection(
        nominal_anchor,
        input_context,
        nominal_address_spend_pubkey,
        nominal_address_view_pubkey,
        is_subaddress,
        nominal_payment_id,
        enote_ephemeral_pubkey,
    ):
        return True, nominal_payment_id

    if nominal_payment_id is not None and verify_external_janus_protection(
        nominal_anchor,
        input_context,
        nominal_address_spend_pubkey,
        nominal_address_view_pubkey,
        is_subaddress,
        None,
        enote_ephemeral_pubkey,
    ):
        return True, None

    expected_special_anchor = k_view_dev.make_janus_anchor_special(
        enote_ephemeral_pubkey, input_context, onetime_address, account_spend_pubkey
    )
    return expected_special_anchor == nominal_anchor, None
