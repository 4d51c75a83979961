"""Payment Proposal Builder.

Turns a sender's intent into a concrete enote. There are four paths:

- coinbase: miner payouts, cleartext amount, main addresses only
- normal: paying anyone, ECDH against the recipient's view pubkey
- special: self-send using k_v and a caller-chosen D_e, anchored with the
  special Janus anchor so the external scanner accepts it
- internal: self-send using s_vb in place of the ECDH secret

Proposals come from the wallet itself. A malformed one is a bug in the
wallet and raises :class:`~carrot_core.exceptions.CarrotProposalError`.
"""

from __future__ import annotations

import logging

from . import crypto
from .account import gen_integrated_address, gen_main_address, gen_subaddress
from .config import ENCRYPTED_AMOUNT_BYTES, NULL_JANUS_ANCHOR, VIEW_TAG_BYTES
from .devices import ViewBalanceSecretDevice, ViewIncomingKeyDevice
from .enote_utils import (
    encrypt_amount,
    encrypt_anchor,
    encrypt_payment_id,
    gen_janus_anchor,
    make_amount_blinding_factor,
    make_enote_ephemeral_privkey,
    make_enote_ephemeral_pubkey,
    make_input_context,
    make_input_context_coinbase,
    make_onetime_address,
    make_sender_receiver_secret,
    make_uncontextualized_shared_key_sender,
    make_view_tag,
)
from .exceptions import CarrotProposalError
from .guarded import GuardedSecret
from .hashing import rand_u32, rand_u64, random_bytes, random_point, x25519_pubkey_gen
from .types import (
    CoinbaseEnote,
    Enote,
    EnoteType,
    OutputEnoteProposal,
    PaymentProposal,
    SelfSendPaymentProposal,
)

logger = logging.getLogger(__name__)


def _check_randomness(proposal: PaymentProposal, proposal_kind: str) -> None:
    if proposal.randomness == NULL_JANUS_ANCHOR:
        raise CarrotProposalError("janus anchor randomness must be nonzero", proposal_kind)


def _get_normal_ephemeral_privkey(proposal: PaymentProposal, input_context: bytes) -> bytes:
    destination = proposal.destination
    return make_enote_ephemeral_privkey(
        proposal.randomness,
        input_context,
        destination.address_spend_pubkey,
        destination.address_view_pubkey,
        destination.payment_id,
    )


def get_enote_ephemeral_pubkey(proposal: PaymentProposal, input_context: bytes) -> bytes:
    """D_e that a normal proposal will publish under ``input_context``."""
    _check_randomness(proposal, "normal")
    with GuardedSecret(_get_normal_ephemeral_privkey(proposal, input_context)) as d_e:
        return make_enote_ephemeral_pubkey(
            d_e,
            proposal.destination.address_spend_pubkey,
            proposal.destination.is_subaddress,
        )


def _get_output_proposal_parts(
    s_sender_receiver: bytes,
    destination_spend_pubkey: bytes,
    payment_id: bytes | None,
    amount: int,
    enote_type: EnoteType,
) -> tuple[bytes, bytes, bytes, bytes, bytes]:
    """Everything derived from s^ctx_sr for a non-coinbase enote.

    Returns:
        (amount_blinding_factor, amount_commitment, onetime_address,
        amount_enc, encrypted_payment_id)
    """
    amount_blinding_factor = make_amount_blinding_factor(s_sender_receiver, enote_type)
    amount_commitment = crypto.commit(amount, crypto.sc_from_bytes(amount_blinding_factor))
    onetime_address = make_onetime_address(
        destination_spend_pubkey, s_sender_receiver, amount_commitment
    )
    amount_enc = encrypt_amount(amount, s_sender_receiver, onetime_address)
    encrypted_payment_id = encrypt_payment_id(payment_id, s_sender_receiver, onetime_address)
    return (
        amount_blinding_factor,
        amount_commitment,
        onetime_address,
        amount_enc,
        encrypted_payment_id,
    )


# =============================================================================
# Coinbase
# =============================================================================


def get_coinbase_output_proposal(proposal: PaymentProposal, block_index: int) -> CoinbaseEnote:
    """Build a coinbase enote paying ``proposal.amount`` in the clear.

    Raises:
        CarrotProposalError: If the randomness is zero or the destination is
            a subaddress or an integrated address.
    """
    _check_randomness(proposal, "coinbase")
    destination = proposal.destination
    if destination.is_subaddress:
        raise CarrotProposalError(
            "subaddresses are not allowed in coinbase outputs", "coinbase"
        )
    if destination.is_integrated:
        raise CarrotProposalError(
            "integrated addresses are not allowed in coinbase outputs", "coinbase"
        )

    input_context = make_input_context_coinbase(block_index)

    with GuardedSecret(_get_normal_ephemeral_privkey(proposal, input_context)) as d_e:
        enote_ephemeral_pubkey = make_enote_ephemeral_pubkey(
            d_e, destination.address_spend_pubkey, False
        )
        with GuardedSecret(
            make_uncontextualized_shared_key_sender(d_e, destination.address_view_pubkey)
        ) as s_sr:
            with GuardedSecret(
                make_sender_receiver_secret(s_sr, enote_ephemeral_pubkey, input_context)
            ) as s_ctx:
                amount_commitment = crypto.zero_commit(proposal.amount)
                onetime_address = make_onetime_address(
                    destination.address_spend_pubkey, s_ctx, amount_commitment
                )
                anchor_enc = encrypt_anchor(proposal.randomness, s_ctx, onetime_address)
            view_tag = make_view_tag(s_sr, input_context, onetime_address)

    logger.debug("Built coinbase enote for block %d", block_index)
    return CoinbaseEnote(
        onetime_address=onetime_address,
        amount=proposal.amount,
        anchor_enc=anchor_enc,
        view_tag=view_tag,
        enote_ephemeral_pubkey=enote_ephemeral_pubkey,
        block_index=block_index,
    )


# =============================================================================
# Normal (external)
# =============================================================================


def get_output_proposal_normal(
    proposal: PaymentProposal, tx_first_key_image: bytes
) -> tuple[OutputEnoteProposal, bytes]:
    """Build an enote paying someone else's address.

    Returns:
        (output enote proposal, encrypted payment id). The encrypted payment
        id is per-enote; the output set decides which one to publish.

    Raises:
        CarrotProposalError: If the randomness is zero.
    """
    _check_randomness(proposal, "normal")
    destination = proposal.destination
    input_context = make_input_context(tx_first_key_image)

    with GuardedSecret(_get_normal_ephemeral_privkey(proposal, input_context)) as d_e:
        enote_ephemeral_pubkey = make_enote_ephemeral_pubkey(
            d_e, destination.address_spend_pubkey, destination.is_subaddress
        )
        with GuardedSecret(
            make_uncontextualized_shared_key_sender(d_e, destination.address_view_pubkey)
        ) as s_sr:
            with GuardedSecret(
                make_sender_receiver_secret(s_sr, enote_ephemeral_pubkey, input_context)
            ) as s_ctx:
                (
                    amount_blinding_factor,
                    amount_commitment,
                    onetime_address,
                    amount_enc,
                    encrypted_payment_id,
                ) = _get_output_proposal_parts(
                    s_ctx,
                    destination.address_spend_pubkey,
                    destination.payment_id,
                    proposal.amount,
                    EnoteType.PAYMENT,
                )
                anchor_enc = encrypt_anchor(proposal.randomness, s_ctx, onetime_address)
            view_tag = make_view_tag(s_sr, input_context, onetime_address)

    logger.debug(
        "Built normal enote (subaddress=%s, integrated=%s)",
        destination.is_subaddress,
        destination.is_integrated,
    )
    enote = Enote(
        onetime_address=onetime_address,
        amount_commitment=amount_commitment,
        amount_enc=amount_enc,
        anchor_enc=anchor_enc,
        view_tag=view_tag,
        enote_ephemeral_pubkey=enote_ephemeral_pubkey,
        tx_first_key_image=tx_first_key_image,
    )
    output = OutputEnoteProposal(
        enote=enote, amount=proposal.amount, amount_blinding_factor=amount_blinding_factor
    )
    return output, encrypted_payment_id


# =============================================================================
# Self-sends
# =============================================================================


def get_output_proposal_special(
    proposal: SelfSendPaymentProposal,
    k_view_dev: ViewIncomingKeyDevice,
    primary_address_spend_pubkey: bytes,
    tx_first_key_image: bytes,
) -> OutputEnoteProposal:
    """Build a self-send enote with the incoming view key.

    The enote scans like an external one. Its anchor is the special anchor,
    which only the holder of k_v can produce, so it passes Janus checks
    without any randomness from the caller.
    """
    input_context = make_input_context(tx_first_key_image)
    enote_ephemeral_pubkey = proposal.enote_ephemeral_pubkey

    with GuardedSecret(k_view_dev.view_key_scalar_mult_x25519(enote_ephemeral_pubkey)) as s_sr:
        with GuardedSecret(
            make_sender_receiver_secret(s_sr, enote_ephemeral_pubkey, input_context)
        ) as s_ctx:
            (
                amount_blinding_factor,
                amount_commitment,
                onetime_address,
                amount_enc,
                _,
            ) = _get_output_proposal_parts(
                s_ctx,
                proposal.destination_address_spend_pubkey,
                None,
                proposal.amount,
                proposal.enote_type,
            )
            anchor_special = k_view_dev.make_janus_anchor_special(
                enote_ephemeral_pubkey,
                input_context,
                onetime_address,
                primary_address_spend_pubkey,
            )
            anchor_enc = encrypt_anchor(anchor_special, s_ctx, onetime_address)
        view_tag = make_view_tag(s_sr, input_context, onetime_address)

    logger.debug("Built special self-send enote (type=%s)", proposal.enote_type.name)
    enote = Enote(
        onetime_address=onetime_address,
        amount_commitment=amount_commitment,
        amount_enc=amount_enc,
        anchor_enc=anchor_enc,
        view_tag=view_tag,
        enote_ephemeral_pubkey=enote_ephemeral_pubkey,
        tx_first_key_image=tx_first_key_image,
    )
    return OutputEnoteProposal(
        enote=enote, amount=proposal.amount, amount_blinding_factor=amount_blinding_factor
    )


def get_output_proposal_internal(
    proposal: SelfSendPaymentProposal,
    s_view_balance_dev: ViewBalanceSecretDevice,
    tx_first_key_image: bytes,
) -> OutputEnoteProposal:
    """Build a self-send enote with the view-balance secret.

    No ECDH: s_vb stands in for the sender-receiver secret. The anchor is
    random since nothing external ever checks it.
    """
    input_context = make_input_context(tx_first_key_image)
    enote_ephemeral_pubkey = proposal.enote_ephemeral_pubkey

    with GuardedSecret(
        s_view_balance_dev.make_internal_sender_receiver_secret(
            enote_ephemeral_pubkey, input_context
        )
    ) as s_ctx:
        (
            amount_blinding_factor,
            amount_commitment,
            onetime_address,
            amount_enc,
            _,
        ) = _get_output_proposal_parts(
            s_ctx,
            proposal.destination_address_spend_pubkey,
            None,
            proposal.amount,
            proposal.enote_type,
        )
    view_tag = s_view_balance_dev.make_internal_view_tag(input_context, onetime_address)

    logger.debug("Built internal self-send enote (type=%s)", proposal.enote_type.name)
    enote = Enote(
        onetime_address=onetime_address,
        amount_commitment=amount_commitment,
        amount_enc=amount_enc,
        anchor_enc=gen_janus_anchor(),
        view_tag=view_tag,
        enote_ephemeral_pubkey=enote_ephemeral_pubkey,
        tx_first_key_image=tx_first_key_image,
    )
    return OutputEnoteProposal(
        enote=enote, amount=proposal.amount, amount_blinding_factor=amount_blinding_factor
    )


# =============================================================================
# Random generators
# =============================================================================


def gen_payment_proposal(
    is_subaddress: bool, has_payment_id: bool, amount: int
) -> PaymentProposal:
    """Random normal proposal to a random destination of the requested shape."""
    if is_subaddress:
        destination = gen_subaddress()
    elif has_payment_id:
        destination = gen_integrated_address()
    else:
        destination = gen_main_address()
    return PaymentProposal(
        destination=destination, amount=amount, randomness=gen_janus_anchor()
    )


def gen_enote() -> Enote:
    """Random well-formed enote that belongs to nobody."""
    return Enote(
        onetime_address=random_point(),
        amount_commitment=random_point(),
        amount_enc=random_bytes(ENCRYPTED_AMOUNT_BYTES),
        anchor_enc=gen_janus_anchor(),
        view_tag=random_bytes(VIEW_TAG_BYTES),
        enote_ephemeral_pubkey=x25519_pubkey_gen(),
        tx_first_key_image=random_point(),
    )


def gen_coinbase_enote() -> CoinbaseEnote:
    """Random well-formed coinbase enote that belongs to nobody."""
    return CoinbaseEnote(
        onetime_address=random_point(),
        amount=rand_u64(),
        anchor_enc=gen_janus_anchor(),
        view_tag=random_bytes(VIEW_TAG_BYTES),
        enote_ephemeral_pubkey=x25519_pubkey_gen(),
        block_index=rand_u32(),
    )
