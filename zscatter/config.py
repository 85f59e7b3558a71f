"""
Configuration for the zscatter point cloud generator and stream server.
Default parameters, generation ranges, and the validated run configurations.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import ConfigurationError

# =============================================================================
# Generation Parameters
# =============================================================================

DEFAULT_CLOUD_COUNT = 1          # Number of gaussian clouds
DEFAULT_POINTS_PER_CLOUD = 1000  # Records per cloud

CENTER_RANGE = (-100.0, 100.0)   # Uniform range for each center axis
SPREAD_RANGE = (1.0, 11.0)       # Uniform range for each per-axis sigma
BASE_COLOR_RANGE = (0.2, 0.8)    # Uniform range for each base color channel
COLOR_JITTER = 0.05              # Sigma of per-point color noise

# Points are sampled in batches so huge clouds never sit in memory at once.
# Changing this changes the seeded output sequence.
GENERATION_BATCH_SIZE = 65536

WRITE_BUFFER_SIZE = 1 << 20      # Output file buffer (1 MiB)

# =============================================================================
# Stream Server Configuration
# =============================================================================

DEFAULT_LISTEN_ADDRESS = ':8080'  # Empty host means all interfaces
DEFAULT_HOST = '0.0.0.0'
DEFAULT_CHUNK_SIZE = 1 << 20      # Bytes per read/write/flush cycle

STREAM_ROUTE = '/stream'
STREAM_MIMETYPE = 'application/octet-stream'
STREAM_CACHE_CONTROL = 'no-store'


@dataclass
class GeneratorConfig:
    """Parameters for one generation run."""
    cloud_count: int
    points_per_cloud: int
    output_path: str
    seed: Optional[int] = None  # None seeds from the wall clock

    def validate(self) -> 'GeneratorConfig':
        if not self.output_path:
            raise ConfigurationError("--out is required")
        if self.cloud_count <= 0 or self.points_per_cloud <= 0:
            raise ConfigurationError("--count and --points must be positive")
        return self

    @property
    def record_count(self) -> int:
        return self.cloud_count * self.points_per_cloud


@dataclass
class StreamerConfig:
    """Parameters for one stream server instance."""
    source_path: str
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def validate(self) -> 'StreamerConfig':
        if not self.source_path:
            raise ConfigurationError("--file is required")
        if self.chunk_size <= 0:
            raise ConfigurationError("--chunk must be positive")
        parse_listen_address(self.listen_address)
        return self


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    Split a ``host:port`` listen address.

    An empty host (``':8080'``) binds all interfaces.

    Args:
        address: Address string such as ``':8080'`` or ``'127.0.0.1:9000'``

    Returns:
        Tuple of (host, port)

    Raises:
        ConfigurationError: If the address has no valid port
    """
    host, sep, port_text = address.rpartition(':')
    if not sep:
        raise ConfigurationError(f"invalid listen address: {address!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigurationError(f"invalid port in listen address: {address!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigurationError(f"port out of range in listen address: {address!r}")
    host = host.strip('[]') or DEFAULT_HOST
    return host, port
