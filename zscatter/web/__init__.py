"""
HTTP transport for record streams.
"""

from .server import create_app, run_server
from .client import StreamClient

__all__ = ['create_app', 'run_server', 'StreamClient']
