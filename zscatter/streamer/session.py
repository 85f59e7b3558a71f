"""
Per-request stream session that relays a binary file chunk by chunk.
"""

import logging
import os
from enum import Enum
from typing import BinaryIO, Iterator, Optional

from ..errors import IOOpenError
from ..format import RECORD_SIZE

logger = logging.getLogger(__name__)


class StreamState(Enum):
    """Stream session state enumeration."""
    IDLE = "idle"
    OPENING = "opening"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"


class StreamSession:
    """
    Streams one source file to one client.

    The session owns a read-only file handle and a single chunk buffer, so
    memory per session is bounded by the chunk size whatever the file size
    or client speed. Nothing is shared between sessions.

    Lifecycle:
    IDLE -> OPENING -> STREAMING -> COMPLETED on end of file
                    \\            \\-> ABORTED on read or write failure
                     \\-> ABORTED on open failure

    The session can be handed to a WSGI response as its iterable: the server
    calls close() when the response finishes or the client goes away.
    """

    def __init__(self, source_path: str, chunk_size: int):
        """
        Initialize the session.

        Args:
            source_path: File to stream
            chunk_size: Maximum bytes per read/write/flush cycle
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.source_path = source_path
        self.chunk_size = chunk_size
        self.bytes_sent = 0

        self._state = StreamState.IDLE
        self._handle: Optional[BinaryIO] = None
        self._buffer = bytearray(chunk_size)

    @property
    def state(self) -> StreamState:
        return self._state

    def open(self) -> 'StreamSession':
        """
        Open the source file for reading.

        Returns:
            self, for chaining

        Raises:
            IOOpenError: If the file cannot be opened (session is ABORTED)
        """
        if self._state != StreamState.IDLE:
            raise RuntimeError(f"cannot open session in state {self._state.value}")

        self._set_state(StreamState.OPENING)
        try:
            self._handle = open(self.source_path, 'rb', buffering=0)
        except OSError as e:
            self._set_state(StreamState.ABORTED)
            raise IOOpenError(f"failed to open data file {self.source_path}: {e}") from e

        size = os.fstat(self._handle.fileno()).st_size
        if size % RECORD_SIZE != 0:
            logger.warning(
                f"{self.source_path} is {size} bytes, not a multiple of {RECORD_SIZE}; "
                f"it may still be being written"
            )

        self._set_state(StreamState.STREAMING)
        return self

    def chunks(self) -> Iterator[bytes]:
        """
        Yield the source file in order, at most chunk_size bytes at a time.

        A read failure ends the session as ABORTED without raising. Closing
        the generator early (client disconnect) also aborts the session.
        """
        if self._state != StreamState.STREAMING:
            raise RuntimeError(f"cannot stream session in state {self._state.value}")

        view = memoryview(self._buffer)
        try:
            while True:
                try:
                    n = self._handle.readinto(self._buffer)
                except OSError as e:
                    logger.warning(f"Read error on {self.source_path}: {e}")
                    self._set_state(StreamState.ABORTED)
                    return

                if not n:
                    self._set_state(StreamState.COMPLETED)
                    return

                self.bytes_sent += n
                yield bytes(view[:n])
        finally:
            view.release()
            self.close()

    def __iter__(self) -> Iterator[bytes]:
        return self.chunks()

    def stream_to(self, sink) -> StreamState:
        """
        Relay the whole file to a sink, flushing after every chunk.

        A failed write or flush means the client is gone: the session is
        ABORTED quietly.

        Args:
            sink: Object with write(bytes) and flush()

        Returns:
            The final session state
        """
        chunks = self.chunks()
        try:
            for chunk in chunks:
                try:
                    sink.write(chunk)
                    sink.flush()
                except OSError as e:
                    logger.info(f"Client went away after {self.bytes_sent} bytes: {e}")
                    self._set_state(StreamState.ABORTED)
                    break
        finally:
            chunks.close()
        return self._state

    def close(self):
        """Release the file handle. Unfinished sessions become ABORTED."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None

        if self._state not in (StreamState.COMPLETED, StreamState.ABORTED):
            self._set_state(StreamState.ABORTED)

    def _set_state(self, state: StreamState):
        old_state = self._state
        self._state = state

        if old_state != state:
            logger.debug(f"Session {self.source_path}: {old_state.value} -> {state.value}")
            if state == StreamState.COMPLETED:
                logger.debug(f"Streamed {self.bytes_sent} bytes of {self.source_path}")

    def __enter__(self):
        """Context manager entry."""
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
