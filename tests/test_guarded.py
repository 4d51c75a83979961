"""Tests for GuardedSecret."""

from __future__ import annotations

import pytest

from carrot_core import GuardedSecret


class TestGuardedSecret:
    """Tests for scoped secret wiping."""

    def test_yields_contents(self) -> None:
        """The buffer holds the secret inside the block."""
        with GuardedSecret(b"\x11" * 32) as secret:
            assert bytes(secret) == b"\x11" * 32

    def test_wiped_on_exit(self) -> None:
        """The buffer is zeroed after the block."""
        guard = GuardedSecret(b"\x11" * 32)
        with guard as secret:
            pass
        assert bytes(secret) == bytes(32)
        assert guard.is_wiped

    def test_wiped_on_exception(self) -> None:
        """The buffer is zeroed even if the block raises."""
        guard = GuardedSecret(b"\x22" * 16)
        with pytest.raises(RuntimeError):
            with guard:
                raise RuntimeError("boom")
        assert guard.is_wiped

    def test_wiped_on_early_return(self) -> None:
        """The buffer is zeroed when the block returns early."""
        guard = GuardedSecret(b"\x33" * 8)

        def use() -> int:
            with guard as secret:
                return secret[0]

        assert use() == 0x33
        assert guard.is_wiped

    def test_repr_is_redacted(self) -> None:
        """repr never shows the secret."""
        guard = GuardedSecret(b"\xab" * 4)
        assert "ab" not in repr(guard)
        assert "4 bytes" in repr(guard)
        assert len(guard) == 4

    def test_adopts_bytearray(self) -> None:
        """A bytearray is held without copying and wiped in place."""
        buffer = bytearray(b"\x44" * 32)
        with GuardedSecret(buffer) as secret:
            assert secret is buffer
        assert buffer == bytearray(32)

    def test_copies_bytes(self) -> None:
        """Immutable bytes are copied into a fresh buffer."""
        data = b"\x55" * 8
        guard = GuardedSecret(data)
        with guard:
            pass
        assert data == b"\x55" * 8
        assert guard.is_wiped
