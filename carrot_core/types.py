"""Carrot SDK Data Types.

Pydantic models for destinations, payment proposals, enotes and scan
results. Every record is immutable once built.
"""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import (
    ENCRYPTED_AMOUNT_BYTES,
    JANUS_ANCHOR_BYTES,
    KEY_BYTES,
    NULL_PAYMENT_ID,
    PAYMENT_ID_BYTES,
    VIEW_TAG_BYTES,
)

# =============================================================================
# Fixed-width wire types
# =============================================================================

Key32 = Annotated[bytes, Field(min_length=KEY_BYTES, max_length=KEY_BYTES)]
JanusAnchor = Annotated[
    bytes, Field(min_length=JANUS_ANCHOR_BYTES, max_length=JANUS_ANCHOR_BYTES)
]
PaymentId = Annotated[bytes, Field(min_length=PAYMENT_ID_BYTES, max_length=PAYMENT_ID_BYTES)]
ViewTag = Annotated[bytes, Field(min_length=VIEW_TAG_BYTES, max_length=VIEW_TAG_BYTES)]
EncryptedAmount = Annotated[
    bytes, Field(min_length=ENCRYPTED_AMOUNT_BYTES, max_length=ENCRYPTED_AMOUNT_BYTES)
]
Amount = Annotated[int, Field(ge=0, le=2**64 - 1)]

# =============================================================================
# Enums
# =============================================================================


class EnoteType(IntEnum):
    """Enote types, bound into the amount blinding factor."""

    PAYMENT = 0
    CHANGE = 1


class AdditionalOutputType(str, Enum):
    """Kinds of output the finalizer may add to complete a set."""

    PAYMENT_SHARED = "payment_shared"
    CHANGE_SHARED = "change_shared"
    CHANGE_UNIQUE = "change_unique"
    DUMMY = "dummy"


# =============================================================================
# Base model
# =============================================================================


class CarrotModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )


# =============================================================================
# Destinations
# =============================================================================


class Destination(CarrotModel):
    """A Carrot address: main address, subaddress or integrated address."""

    address_spend_pubkey: Key32 = Field(..., description="K^j_s")
    address_view_pubkey: Key32 = Field(..., description="K^j_v")
    is_subaddress: bool = Field(False, description="True for subaddresses (j != 0)")
    payment_id: PaymentId | None = Field(
        None,
        description="Legacy payment ID for integrated addresses, None if unset",
    )

    @field_validator("payment_id")
    @classmethod
    def _null_payment_id_is_none(cls, v: bytes | None) -> bytes | None:
        if v == NULL_PAYMENT_ID:
            return None
        return v

    @property
    def payment_id_bytes(self) -> bytes:
        """Wire form of the payment ID (8 zero bytes when unset)."""
        return self.payment_id if self.payment_id is not None else NULL_PAYMENT_ID

    @property
    def is_integrated(self) -> bool:
        return self.payment_id is not None


# =============================================================================
# Payment proposals
# =============================================================================


class PaymentProposal(CarrotModel):
    """Proposal to send an amount to someone else's address."""

    kind: Literal["normal"] = "normal"
    destination: Destination
    amount: Amount = Field(..., description="a")
    randomness: JanusAnchor = Field(
        ...,
        description="anchor_norm: secret 16-byte randomness for the Janus anchor",
    )


class SelfSendPaymentProposal(CarrotModel):
    """Proposal to send change or a payment to one of our own addresses."""

    kind: Literal["selfsend"] = "selfsend"
    destination_address_spend_pubkey: Key32 = Field(
        ..., description="One of our own address spend pubkeys K^j_s"
    )
    amount: Amount = Field(..., description="a")
    enote_type: EnoteType
    enote_ephemeral_pubkey: Key32 = Field(..., description="D_e, chosen by the caller")


AnyPaymentProposal = Annotated[
    Union[PaymentProposal, SelfSendPaymentProposal],
    Field(discriminator="kind"),
]

# =============================================================================
# Enotes
# =============================================================================


class Enote(CarrotModel):
    """A non-coinbase transaction output."""

    kind: Literal["ringct"] = "ringct"
    onetime_address: Key32 = Field(..., description="K_o")
    amount_commitment: Key32 = Field(..., description="C_a")
    amount_enc: EncryptedAmount = Field(..., description="a_enc")
    anchor_enc: JanusAnchor = Field(..., description="anchor_enc")
    view_tag: ViewTag = Field(..., description="vt")
    enote_ephemeral_pubkey: Key32 = Field(..., description="D_e")
    tx_first_key_image: Key32 = Field(..., description="L_0")


class CoinbaseEnote(CarrotModel):
    """A coinbase transaction output. The amount is public."""

    kind: Literal["coinbase"] = "coinbase"
    onetime_address: Key32 = Field(..., description="K_o")
    amount: Amount = Field(..., description="a, in cleartext")
    anchor_enc: JanusAnchor = Field(..., description="anchor_enc")
    view_tag: ViewTag = Field(..., description="vt")
    enote_ephemeral_pubkey: Key32 = Field(..., description="D_e")
    block_index: int = Field(..., ge=0, le=2**64 - 1)


class OutputEnoteProposal(CarrotModel):
    """A built enote plus the opening of its amount commitment."""

    enote: Enote
    amount: Amount
    amount_blinding_factor: Key32 = Field(..., description="k_a", repr=False)


class OutputSet(CarrotModel):
    """Finalized outputs of one transaction."""

    output_enote_proposals: list[OutputEnoteProposal]
    encrypted_payment_id: PaymentId = Field(..., description="pid_enc for tx extra")


# =============================================================================
# Scan results
# =============================================================================


class EnoteScanResult(CarrotModel):
    """Everything recovered from an owned non-coinbase enote."""

    sender_extension_g: Key32 = Field(..., description="k^o_g", repr=False)
    sender_extension_t: Key32 = Field(..., description="k^o_t", repr=False)
    address_spend_pubkey: Key32 = Field(..., description="K^j_s")
    amount: Amount
    amount_blinding_factor: Key32 = Field(..., description="k_a", repr=False)
    payment_id: PaymentId | None = None
    enote_type: EnoteType
    is_internal: bool = False


class CoinbaseEnoteScanResult(CarrotModel):
    """Everything recovered from an owned coinbase enote."""

    sender_extension_g: Key32 = Field(..., description="k^o_g", repr=False)
    sender_extension_t: Key32 = Field(..., description="k^o_t", repr=False)
    address_spend_pubkey: Key32 = Field(..., description="K_s")
    amount: Amount
