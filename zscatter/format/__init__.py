"""
Binary record format for colored 3D points.
"""

from .record import (
    RECORD_SIZE,
    Record,
    RecordAssembler,
    RecordWriter,
    decode,
    decode_array,
    encode,
    encode_array,
    read_records,
)

__all__ = [
    'RECORD_SIZE', 'Record', 'RecordAssembler', 'RecordWriter',
    'decode', 'decode_array', 'encode', 'encode_array', 'read_records',
]
