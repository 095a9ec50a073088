"""Contract between delivery workers and the connection layer."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol


class Transport(Protocol):
    """One open streaming connection.

    ``write`` reports failure by returning False rather than raising; once it
    has failed the connection is considered gone. ``on_close`` callbacks run
    when the peer disconnects.
    """

    async def open(self, headers: Sequence[tuple[bytes, bytes]]) -> None: ...

    async def write(self, data: bytes) -> bool: ...

    def on_close(self, callback: Callable[[], None]) -> None: ...
