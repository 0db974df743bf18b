"""Concurrent draining of a child's stdout and stderr.

managed-process runtime module v0.1.0

Reading one pipe to EOF while the child blocks writing to the other is the
classic subprocess deadlock. ConcurrentDrainer runs one reader thread per
stream; each sends a single tagged result over a shared queue and the caller
joins on both before returning.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Iterable
from enum import IntEnum
from typing import IO, Union

from ..config import get_config
from ..errors import DrainProtocolError

__all__ = [
    "ConcurrentDrainer",
    "StreamId",
    "demux_results",
]

logger = logging.getLogger(__name__)

# Payload is the stream content, or the unexpected error that stopped the worker
DrainPayload = Union[bytes, BaseException]


class StreamId(IntEnum):
    """Tag identifying which stream a drain result belongs to."""

    STDOUT = 1
    STDERR = 2


def demux_results(received: Iterable[tuple[int, DrainPayload]]) -> tuple[bytes, bytes]:
    """Split tagged drain results into (stdout, stderr).

    Args:
        received: Exactly one result per known tag, in any order

    Returns:
        Tuple of (stdout_bytes, stderr_bytes)

    Raises:
        DrainProtocolError: If a tag is unknown, repeated or missing
    """
    received = list(received)
    tags = [tag for tag, _ in received]
    by_tag: dict[int, DrainPayload] = dict(received)
    if sorted(tags) != [StreamId.STDOUT, StreamId.STDERR]:
        raise DrainProtocolError(f"unexpected stream tags: {tags}")

    for payload in by_tag.values():
        if isinstance(payload, BaseException):
            raise payload

    return by_tag[StreamId.STDOUT], by_tag[StreamId.STDERR]  # type: ignore[return-value]


class ConcurrentDrainer:
    """Read stdout and stderr to end-of-stream in parallel.

    Example:
        drainer = ConcurrentDrainer()
        out, err = drainer.drain(popen_stdout, popen_stderr)
    """

    def __init__(self, chunk_size: int | None = None) -> None:
        """Initialize the drainer.

        Args:
            chunk_size: Bytes per read call (default from MP_DRAIN_CHUNK_SIZE)
        """
        self.chunk_size = chunk_size or get_config().drain_chunk_size

    def drain(
        self,
        stdout: IO[bytes] | None,
        stderr: IO[bytes] | None,
    ) -> tuple[bytes, bytes]:
        """Drain both streams and return their complete contents.

        Ownership of both endpoints passes to the drainer; they are closed
        once read. A missing stream (None) yields empty bytes.

        Args:
            stdout: Parent-side reader of the child's stdout
            stderr: Parent-side reader of the child's stderr

        Returns:
            Tuple of (stdout_bytes, stderr_bytes)
        """
        results: queue.Queue[tuple[int, DrainPayload]] = queue.Queue()

        workers = [
            self._start_worker(StreamId.STDOUT, stdout, results),
            self._start_worker(StreamId.STDERR, stderr, results),
        ]

        received = [results.get(), results.get()]
        for worker in workers:
            worker.join()

        out, err = demux_results(received)
        logger.debug(f"Drained stdout={len(out)}B stderr={len(err)}B")
        return out, err

    def _start_worker(
        self,
        stream_id: StreamId,
        stream: IO[bytes] | None,
        results: queue.Queue[tuple[int, DrainPayload]],
    ) -> threading.Thread:
        thread = threading.Thread(
            target=self._worker,
            args=(stream_id, stream, results),
            name=f"drain-{stream_id.name.lower()}",
            daemon=True,
        )
        thread.start()
        return thread

    def _worker(
        self,
        stream_id: StreamId,
        stream: IO[bytes] | None,
        results: queue.Queue[tuple[int, DrainPayload]],
    ) -> None:
        # Exactly one put per worker, whatever happens, so drain() never hangs
        try:
            payload: DrainPayload = self._read_to_end(stream_id, stream)
        except BaseException as e:
            payload = e
        results.put((stream_id, payload))

    def _read_to_end(self, stream_id: StreamId, stream: IO[bytes] | None) -> bytes:
        """Read a stream until EOF.

        A closed or broken stream ends the read instead of raising; whatever
        was read before that point is kept.
        """
        if stream is None:
            return b""

        chunks: list[bytes] = []
        try:
            while True:
                chunk = stream.read(self.chunk_size)
                if not chunk:
                    break
                chunks.append(chunk)
        except (OSError, ValueError) as e:
            logger.debug(f"{stream_id.name.lower()} drain stopped, treating as EOF: {e}")
        finally:
            try:
                stream.close()
            except OSError as e:
                logger.debug(f"Error closing {stream_id.name.lower()}: {e}")

        return b"".join(chunks)
