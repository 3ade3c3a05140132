"""Stream helpers."""

from .buffered_stream import PartiallyBufferedStream, peek_stream, peek_stream_async

__all__ = [
    "PartiallyBufferedStream",
    "peek_stream",
    "peek_stream_async",
]
