"""
Fixed-width binary record format for colored 3D points.

Each record is 24 bytes: six little-endian IEEE-754 float32 values in the
order X, Y, Z, R, G, B. Files are plain concatenations of records with no
header, footer or length prefix.
"""

from dataclasses import dataclass
from typing import BinaryIO, Iterator, Tuple

import numpy as np

from ..errors import IOOpenError, IOReadError, IOWriteError, RecordFormatError

RECORD_FLOATS = 6
RECORD_SIZE = RECORD_FLOATS * 4

FLOAT_DTYPE = np.dtype('<f4')


@dataclass
class Record:
    """A single colored 3D point."""
    x: float
    y: float
    z: float
    r: float
    g: float
    b: float

    def to_tuple(self) -> Tuple[float, float, float, float, float, float]:
        """Return record as (x, y, z, r, g, b) tuple."""
        return (self.x, self.y, self.z, self.r, self.g, self.b)

    @property
    def position(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    @property
    def color(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)


def encode(record: Record) -> bytes:
    """
    Encode a record into its 24-byte form.

    Values are narrowed to float32. Color channels are not clamped.

    Args:
        record: Record to encode

    Returns:
        24 bytes in X, Y, Z, R, G, B order, little-endian
    """
    return np.array(record.to_tuple(), dtype=FLOAT_DTYPE).tobytes()


def decode(buffer: bytes) -> Record:
    """
    Decode one 24-byte record.

    Any bit pattern is accepted; NaN and infinities pass through unchanged.

    Args:
        buffer: Exactly RECORD_SIZE bytes

    Returns:
        The decoded Record

    Raises:
        ValueError: If the buffer is not exactly RECORD_SIZE bytes
    """
    if len(buffer) != RECORD_SIZE:
        raise ValueError(f"record must be {RECORD_SIZE} bytes, got {len(buffer)}")
    values = np.frombuffer(buffer, dtype=FLOAT_DTYPE, count=RECORD_FLOATS)
    return Record(*(float(v) for v in values))


def encode_array(positions: np.ndarray, colors: np.ndarray) -> bytes:
    """
    Encode N points at once.

    Args:
        positions: Array of shape (N, 3) with x, y, z columns
        colors: Array of shape (N, 3) with r, g, b columns

    Returns:
        N * RECORD_SIZE bytes, identical to encoding each record in turn
    """
    positions = np.asarray(positions)
    colors = np.asarray(colors)
    if positions.ndim != 2 or positions.shape[1] != 3 or colors.shape != positions.shape:
        raise ValueError(
            f"positions and colors must both be (N, 3), got {positions.shape} and {colors.shape}"
        )

    packed = np.empty((positions.shape[0], RECORD_FLOATS), dtype=FLOAT_DTYPE)
    packed[:, :3] = positions
    packed[:, 3:] = colors
    return packed.tobytes()


def decode_array(buffer: bytes) -> Tuple[np.ndarray, np.ndarray]:
    """
    Decode a whole number of records.

    Args:
        buffer: Bytes whose length is a multiple of RECORD_SIZE

    Returns:
        Tuple of (positions, colors), each a float32 array of shape (N, 3)

    Raises:
        RecordFormatError: If the length is not record aligned
    """
    if len(buffer) % RECORD_SIZE != 0:
        raise RecordFormatError(
            f"buffer length {len(buffer)} is not a multiple of {RECORD_SIZE}"
        )
    values = np.frombuffer(buffer, dtype=FLOAT_DTYPE).reshape(-1, RECORD_FLOATS)
    return values[:, :3].copy(), values[:, 3:].copy()


class RecordWriter:
    """
    Writes records to a binary sink.

    A single scratch buffer is reused for every record, so tight generation
    loops do not allocate per call.
    """

    def __init__(self, sink: BinaryIO):
        """
        Args:
            sink: Writable binary object (file, BytesIO, socket file)
        """
        self._sink = sink
        self._scratch = np.zeros(RECORD_FLOATS, dtype=FLOAT_DTYPE)
        self.records_written = 0

    def write(self, record: Record):
        """
        Encode a record into the scratch buffer and write it.

        Raises:
            IOWriteError: If the sink write fails
        """
        self._scratch[:] = record.to_tuple()
        self._write(self._scratch.data, 1)

    def write_batch(self, positions: np.ndarray, colors: np.ndarray):
        """
        Write N records from (N, 3) position and color arrays.

        Raises:
            IOWriteError: If the sink write fails
        """
        self._write(encode_array(positions, colors), len(positions))

    def _write(self, data, count: int):
        try:
            self._sink.write(data)
        except OSError as e:
            raise IOWriteError(f"write error: {e}") from e
        self.records_written += count


class RecordAssembler:
    """
    Reassembles records from a byte stream split at arbitrary boundaries.

    Chunks received over the network need not align with records. Complete
    records are decoded as soon as they are available and any trailing
    partial record is carried over to the next chunk.
    """

    def __init__(self):
        self._remainder = b''
        self.records_decoded = 0

    @property
    def pending(self) -> int:
        """Number of carried bytes belonging to an incomplete record."""
        return len(self._remainder)

    def feed(self, chunk: bytes) -> Tuple[np.ndarray, np.ndarray]:
        """
        Add a chunk and decode every record it completes.

        Args:
            chunk: Next bytes of the stream

        Returns:
            Tuple of (positions, colors) for the completed records; both
            arrays are empty (0, 3) when no record was completed
        """
        combined = self._remainder + bytes(chunk)
        aligned = len(combined) - len(combined) % RECORD_SIZE
        self._remainder = combined[aligned:]

        positions, colors = decode_array(combined[:aligned])
        self.records_decoded += len(positions)
        return positions, colors

    def finish(self):
        """
        Check the stream ended on a record boundary.

        Raises:
            RecordFormatError: If a partial record is left over
        """
        if self._remainder:
            raise RecordFormatError(
                f"stream ended with {len(self._remainder)} bytes of a partial record"
            )


def read_records(path: str, batch_records: int = 4096) -> Iterator[Record]:
    """
    Iterate the records of a binary file in order.

    Args:
        path: Path to a record file
        batch_records: Records read per file read

    Yields:
        Record objects in file order

    Raises:
        IOOpenError: If the file cannot be opened
        IOReadError: If a read fails
        RecordFormatError: If the file ends part way through a record
    """
    try:
        handle = open(path, 'rb')
    except OSError as e:
        raise IOOpenError(f"failed to open {path}: {e}") from e

    assembler = RecordAssembler()
    with handle:
        while True:
            try:
                data = handle.read(batch_records * RECORD_SIZE)
            except OSError as e:
                raise IOReadError(f"read error on {path}: {e}") from e
            if not data:
                break
            positions, colors = assembler.feed(data)
            for position, color in zip(positions, colors):
                yield Record(*(float(v) for v in position), *(float(v) for v in color))
    assembler.finish()
