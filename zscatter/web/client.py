"""
HTTP client that consumes a record stream and decodes it as it arrives.
"""

import logging
from typing import Iterator, Tuple

import numpy as np
import requests

from ..config import STREAM_ROUTE
from ..format import RecordAssembler

logger = logging.getLogger(__name__)


class StreamClient:
    """
    Reads a record stream from a zscatter stream server.

    Network chunks are not record aligned; a RecordAssembler carries partial
    records across chunk boundaries.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, read_size: int = 64 * 1024):
        """
        Args:
            base_url: Server URL, e.g. ``http://localhost:8080``
            timeout: Connect/read timeout in seconds
            read_size: Maximum bytes taken from the socket per iteration
        """
        self.url = base_url.rstrip('/') + STREAM_ROUTE
        self.timeout = timeout
        self.read_size = read_size
        self.records_received = 0

    def iter_bytes(self) -> Iterator[bytes]:
        """
        Yield raw body bytes as they arrive.

        Raises:
            requests.HTTPError: If the server answers with an error status
        """
        with requests.get(self.url, stream=True, timeout=self.timeout) as response:
            response.raise_for_status()
            for chunk in response.iter_content(chunk_size=self.read_size):
                if chunk:
                    yield chunk

    def iter_batches(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """
        Yield (positions, colors) arrays for each group of completed records.

        Raises:
            requests.HTTPError: If the server answers with an error status
            RecordFormatError: If the stream ends part way through a record
        """
        assembler = RecordAssembler()
        for chunk in self.iter_bytes():
            positions, colors = assembler.feed(chunk)
            if len(positions):
                self.records_received += len(positions)
                yield positions, colors
        assembler.finish()
        logger.debug(f"Received {self.records_received} records from {self.url}")

    def fetch_all(self) -> Tuple[np.ndarray, np.ndarray]:
        """Read the whole stream into (positions, colors) arrays of shape (N, 3)."""
        positions = []
        colors = []
        for batch_positions, batch_colors in self.iter_batches():
            positions.append(batch_positions)
            colors.append(batch_colors)

        if not positions:
            empty = np.empty((0, 3), dtype=np.float32)
            return empty, empty.copy()
        return np.concatenate(positions), np.concatenate(colors)
