"""Scoped secret wiping.

Sender-receiver secrets and other per-enote intermediates are held in a
mutable buffer that is zeroed when the owning ``with`` block exits, whether
it returns normally, returns early, or raises.
"""

from __future__ import annotations

from types import TracebackType


class GuardedSecret:
    """A byte buffer that is wiped on scope exit.

    A ``bytearray`` argument is adopted as is, so the caller's buffer is the
    one that gets wiped. ``bytes`` are copied into a fresh buffer.

    Example::

        with GuardedSecret(make_uncontextualized_shared_key_sender(d_e, K_v)) as s_sr:
            view_tag = make_view_tag(s_sr, input_context, onetime_address)
    """

    __slots__ = ("_buffer",)

    def __init__(self, data: bytes | bytearray) -> None:
        self._buffer = data if isinstance(data, bytearray) else bytearray(data)

    def __enter__(self) -> bytearray:
        return self._buffer

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.wipe()

    def __len__(self) -> int:
        return len(self._buffer)

    def __repr__(self) -> str:
        return f"GuardedSecret(<{len(self._buffer)} bytes redacted>)"

    @property
    def is_wiped(self) -> bool:
        return not any(self._buffer)

    def wipe(self) -> None:
        self._buffer[:] = bytes(len(self._buffer))
