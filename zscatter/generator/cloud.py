"""
Gaussian point cloud generator.

Each cloud has a random center, per-axis spread and base color. Points are
normally distributed around the center and their color is the base color
with a small normal jitter, clamped to [0, 1].
"""

import logging
import time
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional, Tuple

import numpy as np

from ..config import (
    BASE_COLOR_RANGE,
    CENTER_RANGE,
    COLOR_JITTER,
    GENERATION_BATCH_SIZE,
    SPREAD_RANGE,
    WRITE_BUFFER_SIZE,
    GeneratorConfig,
)
from ..errors import IOOpenError, IOWriteError
from ..format import Record, RecordWriter

logger = logging.getLogger(__name__)


@dataclass
class ClusterParams:
    """Generation state of one cloud."""
    center: np.ndarray      # (3,) x, y, z
    spread: np.ndarray      # (3,) per-axis standard deviation
    base_color: np.ndarray  # (3,) r, g, b


class CloudGenerator:
    """
    Generates gaussian clouds of colored points in a fixed order.

    Cloud 0 is emitted entirely before cloud 1, and so on. The output byte
    order depends on it, so batches are always produced sequentially.
    """

    def __init__(self, config: GeneratorConfig, batch_size: int = GENERATION_BATCH_SIZE):
        """
        Initialize the generator.

        Args:
            config: Validated generation parameters
            batch_size: Points sampled per numpy call
        """
        self.config = config
        self.batch_size = batch_size
        self.seed = config.seed if config.seed is not None else time.time_ns()
        self._rng = np.random.default_rng(self.seed)

    def sample_cluster(self) -> ClusterParams:
        """Draw the center, spread and base color of a new cloud."""
        center = self._rng.uniform(*CENTER_RANGE, size=3)
        spread = self._rng.uniform(*SPREAD_RANGE, size=3)
        base_color = self._rng.uniform(*BASE_COLOR_RANGE, size=3)
        return ClusterParams(center=center, spread=spread, base_color=base_color)

    def sample_points(self, cluster: ClusterParams, count: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Sample points of one cloud.

        Args:
            cluster: Cloud parameters
            count: Number of points

        Returns:
            Tuple of (positions, colors) as float64 arrays of shape (count, 3)
        """
        positions = cluster.center + self._rng.standard_normal((count, 3)) * cluster.spread
        colors = cluster.base_color + self._rng.standard_normal((count, 3)) * COLOR_JITTER
        np.clip(colors, 0.0, 1.0, out=colors)
        return positions, colors

    def iter_batches(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """
        Yield (positions, colors) batches for every cloud in order.

        No batch spans two clouds.
        """
        for cloud in range(self.config.cloud_count):
            cluster = self.sample_cluster()
            logger.debug(
                f"Cloud {cloud}: center={np.round(cluster.center, 2).tolist()} "
                f"spread={np.round(cluster.spread, 2).tolist()}"
            )

            remaining = self.config.points_per_cloud
            while remaining > 0:
                count = min(remaining, self.batch_size)
                yield self.sample_points(cluster, count)
                remaining -= count

    def iter_records(self) -> Iterator[Record]:
        """Yield every generated point as a Record, in output order."""
        for positions, colors in self.iter_batches():
            for position, color in zip(positions.tolist(), colors.tolist()):
                yield Record(*position, *color)

    def write(self, sink: BinaryIO) -> int:
        """
        Write all clouds to a binary sink.

        Generation stops at the first failed write; bytes already written
        are left in place.

        Args:
            sink: Writable binary object

        Returns:
            Number of records written

        Raises:
            IOWriteError: If a sink write fails
        """
        writer = RecordWriter(sink)
        for positions, colors in self.iter_batches():
            writer.write_batch(positions, colors)
        return writer.records_written

    def generate_file(self, path: Optional[str] = None) -> int:
        """
        Generate all clouds into a file.

        Args:
            path: Destination path (defaults to the configured output path)

        Returns:
            Number of records written

        Raises:
            IOOpenError: If the destination cannot be created
            IOWriteError: If a write fails part way through
        """
        path = path or self.config.output_path
        try:
            handle = open(path, 'wb', buffering=WRITE_BUFFER_SIZE)
        except OSError as e:
            raise IOOpenError(f"failed to create output: {e}") from e

        logger.info(
            f"Generating {self.config.cloud_count} clouds x {self.config.points_per_cloud} "
            f"points into {path} (seed {self.seed})"
        )
        with handle:
            written = self.write(handle)
            try:
                handle.flush()
            except OSError as e:
                raise IOWriteError(f"write error: {e}") from e

        logger.info(f"Wrote {written} records to {path}")
        return written
