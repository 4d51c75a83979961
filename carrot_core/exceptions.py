"""Carrot SDK Exceptions.

Every exception here signals a bug in the trusted wallet code driving the
library. Enotes that simply do not belong to the scanning wallet are never
reported through exceptions.
"""

from __future__ import annotations


class CarrotError(Exception):
    """Base exception for all Carrot SDK errors."""

    pass


class CarrotProposalError(CarrotError):
    """Raised when a payment proposal cannot be turned into an enote.

    Attributes:
        message: Human-readable error message.
        proposal_kind: Which builder path rejected the proposal
            (e.g. "coinbase", "normal").
    """

    def __init__(self, message: str, proposal_kind: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.proposal_kind = proposal_kind

    def __str__(self) -> str:
        if self.proposal_kind:
            return f"({self.proposal_kind}) {self.message}"
        return self.message

    def __repr__(self) -> str:
        return (
            f"CarrotProposalError(message={self.message!r}, "
            f"proposal_kind={self.proposal_kind!r})"
        )


class CarrotFinalizationError(CarrotError):
    """Raised when an output set violates a set-wide invariant.

    Attributes:
        message: Human-readable error message.
        num_outputs: Number of outputs in the offending set, if known.
    """

    def __init__(self, message: str, num_outputs: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.num_outputs = num_outputs

    def __str__(self) -> str:
        if self.num_outputs is not None:
            return f"{self.message} (num_outputs: {self.num_outputs})"
        return self.message

    def __repr__(self) -> str:
        return (
            f"CarrotFinalizationError(message={self.message!r}, "
            f"num_outputs={self.num_outputs!r})"
        )


class CarrotKeyDeviceError(CarrotError):
    """Raised when a required key-material device was not provided."""

    def __init__(self, message: str = "Required key device was not provided") -> None:
        super().__init__(message)
        self.message = message


class CarrotEncodingError(CarrotError):
    """Raised when bytes do not decode to a valid curve point or wire value."""

    def __init__(self, message: str = "Invalid encoding") -> None:
        super().__init__(message)
        self.message = message
