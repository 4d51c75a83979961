"""Tests for the enote scanner."""

from __future__ import annotations

import pytest

import carrot_core.devices
import carrot_core.enote_scan
from carrot_core import (
    AccountSecrets,
    CoinbaseEnote,
    CoinbaseEnoteScanResult,
    Destination,
    Enote,
    EnoteScanResult,
    EnoteType,
    PaymentProposal,
    SelfSendPaymentProposal,
    crypto,
    gen_coinbase_enote,
    gen_enote,
    gen_janus_anchor,
    get_coinbase_output_proposal,
    get_output_proposal_internal,
    get_output_proposal_normal,
    get_output_proposal_special,
    scan_enote,
    try_scan_coinbase_enote,
    try_scan_enote_external,
    try_scan_enote_internal,
    x25519_pubkey_gen,
)
from carrot_core.enote_utils import gen_payment_id
from carrot_core.hashing import rand_u32


def _scan_external(
    account: AccountSecrets, enote: Enote, encrypted_payment_id: bytes | None
) -> EnoteScanResult | None:
    s_sender_receiver_unctx = account.k_view_dev.view_key_scalar_mult_x25519(
        enote.enote_ephemeral_pubkey
    )
    return try_scan_enote_external(
        enote,
        encrypted_payment_id,
        s_sender_receiver_unctx,
        account.k_view_dev,
        account.account_spend_pubkey,
    )


def _payment(destination: Destination, amount: int = 1_000_000) -> PaymentProposal:
    return PaymentProposal(destination=destination, amount=amount, randomness=gen_janus_anchor())


def _flip_view_tag(view_tag: bytes) -> bytes:
    return bytes([view_tag[0] ^ 0x01]) + view_tag[1:]


def _count_calls(monkeypatch: pytest.MonkeyPatch, module: object, name: str) -> list[tuple]:
    calls: list[tuple] = []
    original = getattr(module, name)

    def wrapper(*args: object) -> bytes:
        calls.append(args)
        return original(*args)

    monkeypatch.setattr(module, name, wrapper)
    return calls


# =========================================================================
# Normal enotes
# =========================================================================


class TestNormalScan:
    """Build a normal enote, then scan it as the recipient."""

    def test_main_address(self, bob: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Main address enotes are found and spendable."""
        proposal = _payment(bob.main_address())
        output, encrypted_payment_id = get_output_proposal_normal(proposal, tx_first_key_image)

        result = _scan_external(bob, output.enote, encrypted_payment_id)

        assert result is not None
        assert result.address_spend_pubkey == bob.account_spend_pubkey
        assert result.amount == proposal.amount
        assert result.amount_blinding_factor == output.amount_blinding_factor
        assert result.payment_id is None
        assert result.enote_type == EnoteType.PAYMENT
        assert not result.is_internal
        assert bob.can_open(
            bob.subaddress_scalar(0, 0),
            result.sender_extension_g,
            result.sender_extension_t,
            output.enote.onetime_address,
        )

    def test_subaddress(self, bob: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Subaddress enotes recover K^j_s and open with k^j."""
        j_major, j_minor = rand_u32(), rand_u32()
        subaddress = bob.subaddress(j_major, j_minor)
        proposal = _payment(subaddress)
        output, encrypted_payment_id = get_output_proposal_normal(proposal, tx_first_key_image)

        result = _scan_external(bob, output.enote, encrypted_payment_id)

        assert result is not None
        assert result.address_spend_pubkey == subaddress.address_spend_pubkey
        assert result.amount == proposal.amount
        assert result.payment_id is None
        assert bob.can_open(
            bob.subaddress_scalar(j_major, j_minor),
            result.sender_extension_g,
            result.sender_extension_t,
            output.enote.onetime_address,
        )

    def test_integrated_address(self, bob: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Integrated address enotes recover the payment ID."""
        payment_id = gen_payment_id()
        proposal = _payment(bob.integrated_address(payment_id))
        output, encrypted_payment_id = get_output_proposal_normal(proposal, tx_first_key_image)

        result = _scan_external(bob, output.enote, encrypted_payment_id)

        assert result is not None
        assert result.address_spend_pubkey == bob.account_spend_pubkey
        assert result.payment_id == payment_id

    def test_integrated_without_published_pid(
        self, bob: AccountSecrets, tx_first_key_image: bytes
    ) -> None:
        """An integrated enote scanned without its pid_enc fails Janus verification."""
        proposal = _payment(bob.integrated_address(gen_payment_id()))
        output, _ = get_output_proposal_normal(proposal, tx_first_key_image)

        assert _scan_external(bob, output.enote, None) is None

    def test_unrelated_pid_is_dropped(self, bob: AccountSecrets, tx_first_key_image: bytes) -> None:
        """A pid_enc meant for another enote does not stick to ours."""
        output, _ = get_output_proposal_normal(_payment(bob.main_address()), tx_first_key_image)
        _, other_encrypted_payment_id = get_output_proposal_normal(
            _payment(bob.integrated_address(gen_payment_id())), tx_first_key_image
        )

        result = _scan_external(bob, output.enote, other_encrypted_payment_id)

        assert result is not None
        assert result.payment_id is None

    def test_quick_helper(self, bob: AccountSecrets, tx_first_key_image: bytes) -> None:
        """scan_enote finds external enotes."""
        output, encrypted_payment_id = get_output_proposal_normal(
            _payment(bob.main_address(), 77), tx_first_key_image
        )
        result = scan_enote(output.enote, bob, encrypted_payment_id)
        assert result is not None
        assert result.amount == 77


# =========================================================================
# Rejection
# =========================================================================


class TestScanRejection:
    """Enotes that are not ours, or are forged, are rejected."""

    def test_wrong_account(
        self, alice: AccountSecrets, bob: AccountSecrets, tx_first_key_image: bytes
    ) -> None:
        """Another account's view key does not find the enote."""
        output, encrypted_payment_id = get_output_proposal_normal(
            _payment(bob.main_address()), tx_first_key_image
        )
        assert _scan_external(alice, output.enote, encrypted_payment_id) is None
        assert scan_enote(output.enote, alice, encrypted_payment_id) is None

    def test_random_enote(self, bob: AccountSecrets) -> None:
        """A random enote belongs to nobody."""
        assert _scan_external(bob, gen_enote(), None) is None
        assert try_scan_enote_internal(gen_enote(), bob.s_view_balance_dev) is None

    def test_tampered_amount_commitment(
        self, bob: AccountSecrets, tx_first_key_image: bytes
    ) -> None:
        """A commitment that does not open is rejected."""
        output, _ = get_output_proposal_normal(_payment(bob.main_address()), tx_first_key_image)
        enote = output.enote.model_copy(update={"amount_commitment": crypto.scalarmult_base(5)})
        assert _scan_external(bob, enote, None) is None

    def test_tampered_anchor(self, bob: AccountSecrets, tx_first_key_image: bytes) -> None:
        """An anchor inconsistent with D_e fails Janus verification."""
        output, _ = get_output_proposal_normal(_payment(bob.main_address()), tx_first_key_image)
        anchor_enc = bytes([output.enote.anchor_enc[0] ^ 0x01]) + output.enote.anchor_enc[1:]
        enote = output.enote.model_copy(update={"anchor_enc": anchor_enc})
        assert _scan_external(bob, enote, None) is None

    def test_janus_attack(self, bob: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Pairing a subaddress spend key with the main view key is caught.

        The attacker sends to (K^j_s, k_v G). ECDH, view tag and commitment
        all check out, so only the Janus check can tell the enote is forged.
        """
        subaddress = bob.subaddress(2, 9)
        forged = Destination(
            address_spend_pubkey=subaddress.address_spend_pubkey,
            address_view_pubkey=bob.main_address_view_pubkey,
            is_subaddress=False,
        )
        output, encrypted_payment_id = get_output_proposal_normal(
            _payment(forged), tx_first_key_image
        )

        assert _scan_external(bob, output.enote, encrypted_payment_id) is None

    def test_external_scan_ignores_internal_enote(
        self, alice: AccountSecrets, tx_first_key_image: bytes
    ) -> None:
        """An internal enote is only found with s_vb."""
        proposal = SelfSendPaymentProposal(
            destination_address_spend_pubkey=alice.account_spend_pubkey,
            amount=10,
            enote_type=EnoteType.CHANGE,
            enote_ephemeral_pubkey=x25519_pubkey_gen(),
        )
        output = get_output_proposal_internal(
            proposal, alice.s_view_balance_dev, tx_first_key_image
        )
        assert _scan_external(alice, output.enote, None) is None

    def test_tampered_view_tag(
        self, monkeypatch: pytest.MonkeyPatch, bob: AccountSecrets, tx_first_key_image: bytes
    ) -> None:
        """A view tag mismatch rejects the enote before s_ctx is derived."""
        calls = _count_calls(monkeypatch, carrot_core.enote_scan, "make_sender_receiver_secret")
        output, _ = get_output_proposal_normal(_payment(bob.main_address()), tx_first_key_image)
        assert _scan_external(bob, output.enote, None) is not None
        assert len(calls) == 1

        calls.clear()
        enote = output.enote.model_copy(update={"view_tag": _flip_view_tag(output.enote.view_tag)})
        assert _scan_external(bob, enote, None) is None
        assert calls == []


# =========================================================================
# Self-sends
# =========================================================================


class TestSelfSendScan:
    """Build self-send enotes, then scan them back."""

    def _selfsend(
        self, spend_pubkey: bytes, enote_type: EnoteType, amount: int = 31337
    ) -> SelfSendPaymentProposal:
        return SelfSendPaymentProposal(
            destination_address_spend_pubkey=spend_pubkey,
            amount=amount,
            enote_type=enote_type,
            enote_ephemeral_pubkey=x25519_pubkey_gen(),
        )

    def test_special_main_address(self, alice: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Special self-sends pass the external scan through the special anchor."""
        proposal = self._selfsend(alice.account_spend_pubkey, EnoteType.CHANGE)
        output = get_output_proposal_special(
            proposal, alice.k_view_dev, alice.account_spend_pubkey, tx_first_key_image
        )

        result = _scan_external(alice, output.enote, None)

        assert result is not None
        assert result.address_spend_pubkey == alice.account_spend_pubkey
        assert result.amount == proposal.amount
        assert result.amount_blinding_factor == output.amount_blinding_factor
        assert result.enote_type == EnoteType.CHANGE
        assert result.payment_id is None
        assert alice.can_open(
            alice.subaddress_scalar(0, 0),
            result.sender_extension_g,
            result.sender_extension_t,
            output.enote.onetime_address,
        )

    def test_special_subaddress(self, alice: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Special self-sends to a subaddress recover K^j_s."""
        subaddress = alice.subaddress(1, 4)
        proposal = self._selfsend(subaddress.address_spend_pubkey, EnoteType.PAYMENT)
        output = get_output_proposal_special(
            proposal, alice.k_view_dev, alice.account_spend_pubkey, tx_first_key_image
        )

        result = _scan_external(alice, output.enote, gen_payment_id())

        assert result is not None
        assert result.address_spend_pubkey == subaddress.address_spend_pubkey
        assert result.enote_type == EnoteType.PAYMENT
        assert result.payment_id is None
        assert alice.can_open(
            alice.subaddress_scalar(1, 4),
            result.sender_extension_g,
            result.sender_extension_t,
            output.enote.onetime_address,
        )

    def test_internal_main_address(self, alice: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Internal self-sends are found with s_vb."""
        proposal = self._selfsend(alice.account_spend_pubkey, EnoteType.PAYMENT)
        output = get_output_proposal_internal(
            proposal, alice.s_view_balance_dev, tx_first_key_image
        )

        result = try_scan_enote_internal(output.enote, alice.s_view_balance_dev)

        assert result is not None
        assert result.is_internal
        assert result.address_spend_pubkey == alice.account_spend_pubkey
        assert result.amount == proposal.amount
        assert result.amount_blinding_factor == output.amount_blinding_factor
        assert result.enote_type == EnoteType.PAYMENT
        assert alice.can_open(
            alice.subaddress_scalar(0, 0),
            result.sender_extension_g,
            result.sender_extension_t,
            output.enote.onetime_address,
        )

    def test_internal_subaddress(self, alice: AccountSecrets, tx_first_key_image: bytes) -> None:
        """Internal self-sends to a subaddress open with k^j."""
        subaddress = alice.subaddress(6, 2)
        proposal = self._selfsend(subaddress.address_spend_pubkey, EnoteType.CHANGE)
        output = get_output_proposal_internal(
            proposal, alice.s_view_balance_dev, tx_first_key_image
        )

        result = scan_enote(output.enote, alice)

        assert result is not None
        assert result.is_internal
        assert result.address_spend_pubkey == subaddress.address_spend_pubkey
        assert result.enote_type == EnoteType.CHANGE
        assert alice.can_open(
            alice.subaddress_scalar(6, 2),
            result.sender_extension_g,
            result.sender_extension_t,
            output.enote.onetime_address,
        )

    def test_internal_wrong_account(
        self, alice: AccountSecrets, bob: AccountSecrets, tx_first_key_image: bytes
    ) -> None:
        """Another account's s_vb does not find the enote."""
        proposal = self._selfsend(alice.account_spend_pubkey, EnoteType.CHANGE)
        output = get_output_proposal_internal(
            proposal, alice.s_view_balance_dev, tx_first_key_image
        )
        assert try_scan_enote_internal(output.enote, bob.s_view_balance_dev) is None

    def test_internal_tampered_view_tag(
        self, monkeypatch: pytest.MonkeyPatch, alice: AccountSecrets, tx_first_key_image: bytes
    ) -> None:
        """An internal view tag mismatch rejects the enote before s_ctx is derived."""
        calls = _count_calls(monkeypatch, carrot_core.devices, "make_sender_receiver_secret")
        output = get_output_proposal_internal(
            self._selfsend(alice.account_spend_pubkey, EnoteType.CHANGE),
            alice.s_view_balance_dev,
            tx_first_key_image,
        )
        calls.clear()
        assert try_scan_enote_internal(output.enote, alice.s_view_balance_dev) is not None
        assert len(calls) == 1

        calls.clear()
        enote = output.enote.model_copy(update={"view_tag": _flip_view_tag(output.enote.view_tag)})
        assert try_scan_enote_internal(enote, alice.s_view_balance_dev) is None
        assert calls == []


# =========================================================================
# Coinbase
# =========================================================================


class TestCoinbaseScan:
    """Build coinbase enotes, then scan them back."""

    def _scan(
        self, account: AccountSecrets, enote: CoinbaseEnote
    ) -> CoinbaseEnoteScanResult | None:
        s_sender_receiver_unctx = account.k_view_dev.view_key_scalar_mult_x25519(
            enote.enote_ephemeral_pubkey
        )
        return try_scan_coinbase_enote(
            enote, s_sender_receiver_unctx, account.k_view_dev, account.account_spend_pubkey
        )

    def test_main_address(self, bob: AccountSecrets) -> None:
        """Coinbase enotes to the main address are found and spendable."""
        proposal = _payment(bob.main_address(), 600_000_000_000)
        enote = get_coinbase_output_proposal(proposal, rand_u32())

        result = self._scan(bob, enote)

        assert result is not None
        assert result.address_spend_pubkey == bob.account_spend_pubkey
        assert result.amount == proposal.amount
        assert bob.can_open(
            bob.subaddress_scalar(0, 0),
            result.sender_extension_g,
            result.sender_extension_t,
            enote.onetime_address,
        )

    def test_wrong_account(self, alice: AccountSecrets, bob: AccountSecrets) -> None:
        """Another account does not find the coinbase enote."""
        enote = get_coinbase_output_proposal(_payment(bob.main_address()), 10)
        assert self._scan(alice, enote) is None

    def test_random_coinbase_enote(self, bob: AccountSecrets) -> None:
        """A random coinbase enote belongs to nobody."""
        assert self._scan(bob, gen_coinbase_enote()) is None

    def test_subaddress_rejected(self, bob: AccountSecrets) -> None:
        """A coinbase enote paying one of our subaddresses is not accepted.

        The destination pairs K^j_s with the main view key so ECDH and the
        view tag succeed; the spend pubkey check must reject it.
        """
        forged = Destination(
            address_spend_pubkey=bob.subaddress(0, 1).address_spend_pubkey,
            address_view_pubkey=bob.main_address_view_pubkey,
            is_subaddress=False,
        )
        enote = get_coinbase_output_proposal(_payment(forged), 5)
        assert self._scan(bob, enote) is None

    def test_tampered_anchor(self, bob: AccountSecrets) -> None:
        """A coinbase anchor inconsistent with D_e fails Janus verification."""
        enote = get_coinbase_output_proposal(_payment(bob.main_address()), 42)
        anchor_enc = enote.anchor_enc[:-1] + bytes([enote.anchor_enc[-1] ^ 0x80])
        assert self._scan(bob, enote.model_copy(update={"anchor_enc": anchor_enc})) is None

    def test_block_index_binds(self, bob: AccountSecrets) -> None:
        """Moving a coinbase enote to another block breaks the view tag."""
        enote = get_coinbase_output_proposal(_payment(bob.main_address()), 100)
        assert self._scan(bob, enote.model_copy(update={"block_index": 101})) is None

    def test_tampered_view_tag(self, monkeypatch: pytest.MonkeyPatch, bob: AccountSecrets) -> None:
        """A coinbase view tag mismatch rejects the enote before s_ctx is derived."""
        calls = _count_calls(monkeypatch, carrot_core.enote_scan, "make_sender_receiver_secret")
        enote = get_coinbase_output_proposal(_payment(bob.main_address()), 77)
        assert self._scan(bob, enote) is not None
        assert len(calls) == 1

        calls.clear()
        tampered = enote.model_copy(update={"view_tag": _flip_view_tag(enote.view_tag)})
        assert self._scan(bob, tampered) is None
        assert calls == []
