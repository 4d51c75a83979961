"""Output Set Finalizer.

Completes a transaction's payment proposals to a valid output set and builds
the enotes in canonical order. Every Carrot transaction has between
CARROT_MIN_TX_OUTPUTS and CARROT_MAX_TX_OUTPUTS outputs and at least one
self-send. A 2-output transaction shares a single enote ephemeral pubkey
between both outputs; larger transactions use a distinct one per output.
"""

from __future__ import annotations

import logging

from .account import gen_main_address
from .config import (
    CARROT_MAX_TX_OUTPUTS,
    CARROT_MIN_TX_OUTPUTS,
    NULL_JANUS_ANCHOR,
    NULL_PAYMENT_ID,
)
from .devices import ViewBalanceSecretDevice, ViewIncomingKeyDevice
from .enote_utils import gen_janus_anchor, gen_payment_id, make_input_context
from .exceptions import CarrotFinalizationError, CarrotKeyDeviceError
from .hashing import x25519_pubkey_gen
from .payment_proposal import (
    get_enote_ephemeral_pubkey,
    get_output_proposal_internal,
    get_output_proposal_normal,
    get_output_proposal_special,
)
from .types import (
    AdditionalOutputType,
    EnoteType,
    OutputEnoteProposal,
    OutputSet,
    PaymentProposal,
    SelfSendPaymentProposal,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Additional output
# =============================================================================


def get_additional_output_type(
    num_outgoing: int,
    num_selfsend: int,
    remaining_change: bool,
    have_payment_type_selfsend: bool,
) -> AdditionalOutputType | None:
    """Decide which output, if any, must be added to complete a set.

    Raises:
        CarrotFinalizationError: If the set is empty, or still needs an
            output but is already at the maximum size.
    """
    num_outputs = num_outgoing + num_selfsend
    already_completed = num_outputs >= 2 and num_selfsend >= 1 and not remaining_change

    if num_outputs == 0:
        raise CarrotFinalizationError("set contains 0 outputs", num_outputs)
    if already_completed:
        return None
    if num_outputs == 1:
        if num_selfsend == 0:
            return AdditionalOutputType.CHANGE_SHARED
        if not remaining_change:
            return AdditionalOutputType.DUMMY
        if have_payment_type_selfsend:
            return AdditionalOutputType.CHANGE_SHARED
        return AdditionalOutputType.PAYMENT_SHARED
    if num_outputs < CARROT_MAX_TX_OUTPUTS:
        return AdditionalOutputType.CHANGE_UNIQUE
    raise CarrotFinalizationError(
        "set needs finalization but already contains too many outputs", num_outputs
    )


def get_additional_output_proposal(
    num_outgoing: int,
    num_selfsend: int,
    remaining_change: int,
    have_payment_type_selfsend: bool,
    change_address_spend_pubkey: bytes,
    other_enote_ephemeral_pubkey: bytes | None,
) -> PaymentProposal | SelfSendPaymentProposal | None:
    """Concrete proposal for the output chosen by :func:`get_additional_output_type`.

    ``other_enote_ephemeral_pubkey`` is the D_e of the set's sole existing
    output. It is only read when the new output shares that key.
    """
    additional_output_type = get_additional_output_type(
        num_outgoing, num_selfsend, bool(remaining_change), have_payment_type_selfsend
    )
    if additional_output_type is None:
        return None

    logger.debug("Adding %s output", additional_output_type.value)

    if additional_output_type is AdditionalOutputType.DUMMY:
        return PaymentProposal(
            destination=gen_main_address(), amount=0, randomness=gen_janus_anchor()
        )

    if additional_output_type is AdditionalOutputType.CHANGE_UNIQUE:
        enote_ephemeral_pubkey = x25519_pubkey_gen()
    elif other_enote_ephemeral_pubkey is None:
        raise CarrotFinalizationError(
            f"{additional_output_type.value} output needs the other output's ephemeral pubkey",
            num_outgoing + num_selfsend,
        )
    else:
        enote_ephemeral_pubkey = other_enote_ephemeral_pubkey

    enote_type = (
        EnoteType.PAYMENT
        if additional_output_type is AdditionalOutputType.PAYMENT_SHARED
        else EnoteType.CHANGE
    )
    return SelfSendPaymentProposal(
        destination_address_spend_pubkey=change_address_spend_pubkey,
        amount=remaining_change,
        enote_type=enote_type,
        enote_ephemeral_pubkey=enote_ephemeral_pubkey,
    )


def finalize_payment_proposals(
    normal_payment_proposals: list[PaymentProposal],
    selfsend_payment_proposals: list[SelfSendPaymentProposal],
    remaining_change: int,
    change_address_spend_pubkey: bytes,
    tx_first_key_image: bytes,
) -> PaymentProposal | SelfSendPaymentProposal | None:
    """Append the additional output, if one is needed, to the caller's lists.

    The lists are modified in place. When a dummy output is added next to a
    lone self-send, the self-send is re-pointed at the dummy's ephemeral
    pubkey so the two outputs share one.

    Returns:
        The proposal that was added, or None if the set was already complete.
    """
    num_outgoing = len(normal_payment_proposals)
    num_selfsend = len(selfsend_payment_proposals)
    have_payment_type_selfsend = any(
        p.enote_type == EnoteType.PAYMENT for p in selfsend_payment_proposals
    )
    input_context = make_input_context(tx_first_key_image)

    other_enote_ephemeral_pubkey = None
    if num_outgoing + num_selfsend == 1:
        if normal_payment_proposals:
            other_enote_ephemeral_pubkey = get_enote_ephemeral_pubkey(
                normal_payment_proposals[0], input_context
            )
        else:
            other_enote_ephemeral_pubkey = selfsend_payment_proposals[0].enote_ephemeral_pubkey

    additional = get_additional_output_proposal(
        num_outgoing,
        num_selfsend,
        remaining_change,
        have_payment_type_selfsend,
        change_address_spend_pubkey,
        other_enote_ephemeral_pubkey,
    )
    if additional is None:
        return None

    if isinstance(additional, PaymentProposal):
        normal_payment_proposals.append(additional)
        dummy_enote_ephemeral_pubkey = get_enote_ephemeral_pubkey(additional, input_context)
        selfsend_payment_proposals[0] = selfsend_payment_proposals[0].model_copy(
            update={"enote_ephemeral_pubkey": dummy_enote_ephemeral_pubkey}
        )
    else:
        selfsend_payment_proposals.append(additional)
    return additional


# =============================================================================
# Output set assembly
# =============================================================================


def get_output_enote_proposals(
    normal_payment_proposals: list[PaymentProposal],
    selfsend_payment_proposals: list[SelfSendPaymentProposal],
    s_view_balance_dev: ViewBalanceSecretDevice | None,
    k_view_dev: ViewIncomingKeyDevice | None,
    account_spend_pubkey: bytes,
    tx_first_key_image: bytes,
) -> OutputSet:
    """Build every enote of a finalized proposal set.

    Self-sends use the internal path when ``s_view_balance_dev`` is given,
    otherwise the special path with ``k_view_dev``.

    Raises:
        CarrotFinalizationError: If the proposals do not form a valid set.
        CarrotKeyDeviceError: If there are self-sends but neither device
            was given.
    """
    num_proposals = len(normal_payment_proposals) + len(selfsend_payment_proposals)
    if num_proposals < CARROT_MIN_TX_OUTPUTS:
        raise CarrotFinalizationError("too few payment proposals", num_proposals)
    if num_proposals > CARROT_MAX_TX_OUTPUTS:
        raise CarrotFinalizationError("too many payment proposals", num_proposals)
    if not selfsend_payment_proposals:
        raise CarrotFinalizationError("no selfsend payment proposal", num_proposals)

    num_integrated = sum(1 for p in normal_payment_proposals if p.destination.is_integrated)
    if num_integrated > 1:
        raise CarrotFinalizationError(
            "only one integrated address is allowed per tx output set", num_proposals
        )

    for proposal in normal_payment_proposals:
        if proposal.randomness == NULL_JANUS_ANCHOR:
            raise CarrotFinalizationError(
                "normal payment proposal has unset anchor_norm randomness", num_proposals
            )

    normal_payment_proposals = sorted(normal_payment_proposals, key=lambda p: p.randomness)
    for prev, cur in zip(normal_payment_proposals, normal_payment_proposals[1:]):
        if prev.randomness == cur.randomness:
            raise CarrotFinalizationError(
                "normal payment proposals contain duplicate anchor_norm randomness",
                num_proposals,
            )

    outputs: list[OutputEnoteProposal] = []
    encrypted_payment_id = NULL_PAYMENT_ID

    for i, proposal in enumerate(normal_payment_proposals):
        output, proposal_encrypted_payment_id = get_output_proposal_normal(
            proposal, tx_first_key_image
        )
        outputs.append(output)
        if i == 0 or proposal.destination.is_integrated:
            encrypted_payment_id = proposal_encrypted_payment_id

    if num_integrated == 0 and len(normal_payment_proposals) > 1:
        encrypted_payment_id = gen_payment_id()

    for selfsend in selfsend_payment_proposals:
        if s_view_balance_dev is not None:
            outputs.append(
                get_output_proposal_internal(selfsend, s_view_balance_dev, tx_first_key_image)
            )
        elif k_view_dev is not None:
            outputs.append(
                get_output_proposal_special(
                    selfsend, k_view_dev, account_spend_pubkey, tx_first_key_image
                )
            )
        else:
            raise CarrotKeyDeviceError(
                "neither a view-balance nor view-incoming device was provided"
            )

    outputs.sort(key=lambda o: o.enote.enote_ephemeral_pubkey)
    has_unique_ephemeral_pubkeys = all(
        a.enote.enote_ephemeral_pubkey != b.enote.enote_ephemeral_pubkey
        for a, b in zip(outputs, outputs[1:])
    )
    if num_proposals == 2 and has_unique_ephemeral_pubkeys:
        raise CarrotFinalizationError(
            "a 2-out set needs to share an ephemeral pubkey, but this 2-out set doesn't",
            num_proposals,
        )
    if num_proposals != 2 and not has_unique_ephemeral_pubkeys:
        raise CarrotFinalizationError(
            "this >2-out set contains duplicate enote ephemeral pubkeys", num_proposals
        )

    outputs.sort(key=lambda o: o.enote.onetime_address)

    logger.debug(
        "Finalized %d enotes (%d normal, %d selfsend, internal=%s)",
        len(outputs),
        len(normal_payment_proposals),
        len(selfsend_payment_proposals),
        s_view_balance_dev is not None,
    )
    return OutputSet(output_enote_proposals=outputs, encrypted_payment_id=encrypted_payment_id)
