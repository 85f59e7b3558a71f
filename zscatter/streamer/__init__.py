"""
Chunked streaming of record files to network clients.
"""

from .session import StreamSession, StreamState

__all__ = ['StreamSession', 'StreamState']
