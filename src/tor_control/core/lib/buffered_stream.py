"""Replay of already-consumed bytes ahead of a live stream.

When a caller peeks at the first bytes of a socket (to sniff a protocol, say)
those bytes are gone from the socket. ``PartiallyBufferedStream`` hands them
back: reads are served from the captured buffer until it is exhausted, then go
straight to the inner stream, so downstream readers see one contiguous stream.

The adapter is read-only and forward-only. Seeking, position and length
queries, truncation and writes all raise ``NotSupportedError``.

Example:
    head, stream = peek_stream(sock.makefile("rb"), 5)
    if head.startswith(b"\\x05"):
        handle_socks(stream)  # Sees the 5 bytes again, then the rest
"""

from typing import Any, NoReturn

from tor_control.core.exceptions import NotSupportedError


class PartiallyBufferedStream:
    """Serve a captured buffer first, then delegate to the inner stream.

    Args:
        buffer: Bytes read from ``inner`` before this wrapper was built
        offset: Index of the first unread byte in ``buffer``
        length: Number of unread bytes starting at ``offset``
        inner: Stream positioned right after the captured bytes; owned and
            closed by this wrapper
    """

    def __init__(self, buffer: bytes, offset: int, length: int, inner: Any) -> None:
        if offset < 0 or length < 0 or offset + length > len(buffer):
            msg = f"Invalid buffer window offset={offset} length={length} for {len(buffer)} bytes"
            raise ValueError(msg)
        self._buffer = memoryview(buffer)
        self._offset = offset
        self._remaining = length
        self._inner = inner
        self._closed = False

    @property
    def buffered(self) -> int:
        """Number of captured bytes not yet read."""
        return self._remaining

    @property
    def closed(self) -> bool:
        return self._closed

    def _take(self, size: int) -> bytes | None:
        """Consume up to ``size`` buffered bytes, or return None when exhausted."""
        if self._remaining == 0:
            return None
        count = self._remaining if size < 0 else min(self._remaining, size)
        chunk = self._buffer[self._offset : self._offset + count].tobytes()
        self._offset += count
        self._remaining -= count
        return chunk

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes.

        While captured bytes remain only those are returned and the inner stream
        is left alone; a negative or None ``size`` returns all of them.
        """
        size = -1 if size is None else size
        chunk = self._take(size)
        if chunk is not None:
            return chunk
        return self._inner.read(size)

    def readinto(self, destination: bytearray | memoryview) -> int:
        """Read into a writable buffer and return the number of bytes copied."""
        view = memoryview(destination).cast("B")
        chunk = self._take(len(view))
        if chunk is not None:
            view[: len(chunk)] = chunk
            return len(chunk)
        return self._inner.readinto(destination)

    async def read_async(self, size: int | None = -1) -> bytes:
        """Like ``read`` but awaits the inner stream once the buffer is exhausted.

        Draining the buffer never suspends. Cancellation is whatever the inner
        stream's ``read`` coroutine does with it.
        """
        size = -1 if size is None else size
        chunk = self._take(size)
        if chunk is not None:
            return chunk
        return await self._inner.read(size)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def writable(self) -> bool:
        return False

    def flush(self) -> None:
        pass

    def _unsupported(self, operation: str) -> NoReturn:
        msg = f"{type(self).__name__} does not support {operation}"
        raise NotSupportedError(msg)

    def seek(self, offset: int, whence: int = 0) -> NoReturn:
        self._unsupported("seek")

    def tell(self) -> NoReturn:
        self._unsupported("tell")

    def truncate(self, size: int | None = None) -> NoReturn:
        self._unsupported("truncate")

    def write(self, data: bytes) -> NoReturn:
        self._unsupported("write")

    @property
    def length(self) -> NoReturn:
        self._unsupported("length")

    @property
    def position(self) -> NoReturn:
        self._unsupported("position")

    @position.setter
    def position(self, value: int) -> NoReturn:
        self._unsupported("position")

    def close(self) -> None:
        """Close the inner stream; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self._inner.close()

    def __enter__(self) -> "PartiallyBufferedStream":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aenter__(self) -> "PartiallyBufferedStream":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


def peek_stream(inner: Any, size: int) -> tuple[bytes, PartiallyBufferedStream]:
    """Read up to ``size`` bytes from ``inner`` and wrap it so they are replayed.

    Returns:
        tuple: The peeked bytes and a stream that yields them again first
    """
    head = inner.read(size)
    return head, PartiallyBufferedStream(head, 0, len(head), inner)


async def peek_stream_async(inner: Any, size: int) -> tuple[bytes, PartiallyBufferedStream]:
    """Asynchronous ``peek_stream`` for streams whose ``read`` is a coroutine."""
    head = await inner.read(size)
    return head, PartiallyBufferedStream(head, 0, len(head), inner)
