import numpy as np
import pytest

from zscatter.format import encode_array


@pytest.fixture
def record_file(tmp_path):
    """A 1000-record file with known contents."""
    rng = np.random.default_rng(7)
    positions = rng.uniform(-50, 50, size=(1000, 3))
    colors = rng.uniform(0, 1, size=(1000, 3))
    data = encode_array(positions, colors)

    path = tmp_path / "clouds.bin"
    path.write_bytes(data)
    return path, data


@pytest.fixture
def odd_file(tmp_path):
    """A file whose size is neither record nor chunk aligned."""
    data = bytes(range(256)) * 3 + b"\x01\x02\x03"
    path = tmp_path / "odd.bin"
    path.write_bytes(data)
    return path, data
