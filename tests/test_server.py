import threading
import time

import numpy as np
import pytest
import requests
from werkzeug.serving import make_server

from zscatter.config import StreamerConfig
from zscatter.errors import RecordFormatError
from zscatter.format import decode_array
from zscatter.web import StreamClient, create_app


def make_client(path, chunk_size=10):
    app = create_app(StreamerConfig(source_path=str(path), chunk_size=chunk_size))
    app.config['TESTING'] = True
    return app.test_client()


@pytest.fixture
def live_server(record_file):
    """A threaded werkzeug server streaming the record file in 10-byte chunks."""
    path, data = record_file
    app = create_app(StreamerConfig(source_path=str(path), chunk_size=10))
    server = make_server('127.0.0.1', 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{server.server_port}", data

    server.shutdown()
    thread.join(timeout=5.0)


def test_stream_headers(record_file):
    path, _ = record_file
    response = make_client(path).get('/stream')

    assert response.status_code == 200
    assert response.headers['Content-Type'] == 'application/octet-stream'
    assert response.headers['Cache-Control'] == 'no-store'


def test_stream_body_is_complete(record_file):
    path, data = record_file
    response = make_client(path, chunk_size=10).get('/stream')

    assert response.data == data


def test_stream_unaligned_file(odd_file):
    path, data = odd_file
    response = make_client(path, chunk_size=10).get('/stream')

    assert response.status_code == 200
    assert response.data == data


def test_each_request_rereads_file(tmp_path):
    path = tmp_path / "live.bin"
    path.write_bytes(b"a" * 24)
    client = make_client(path)

    first = client.get('/stream').data
    path.write_bytes(b"b" * 48)
    second = client.get('/stream').data

    assert first == b"a" * 24
    assert second == b"b" * 48


def test_missing_source_is_server_error(tmp_path):
    response = make_client(tmp_path / "missing.bin").get('/stream')

    assert response.status_code == 500
    assert response.headers['Content-Type'].startswith('text/plain')
    assert b"failed to open data file" in response.data
    assert response.headers.get('Cache-Control') != 'no-store'


def test_only_stream_route_exists(record_file):
    path, _ = record_file
    client = make_client(path)

    assert client.get('/').status_code == 404
    assert client.post('/stream').status_code == 405


def test_apps_are_independent(tmp_path):
    first = tmp_path / "first.bin"
    second = tmp_path / "second.bin"
    first.write_bytes(b"\x01" * 24)
    second.write_bytes(b"\x02" * 48)

    assert make_client(first).get('/stream').data == b"\x01" * 24
    assert make_client(second).get('/stream').data == b"\x02" * 48


def test_client_fetches_and_decodes(live_server):
    url, data = live_server

    positions, colors = StreamClient(url).fetch_all()

    expected_positions, expected_colors = decode_array(data)
    np.testing.assert_array_equal(positions, expected_positions)
    np.testing.assert_array_equal(colors, expected_colors)


def test_client_raises_on_missing_source(tmp_path):
    app = create_app(StreamerConfig(source_path=str(tmp_path / "missing.bin"), chunk_size=10))
    server = make_server('127.0.0.1', 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        with pytest.raises(requests.HTTPError):
            StreamClient(f"http://127.0.0.1:{server.server_port}").fetch_all()
    finally:
        server.shutdown()
        thread.join(timeout=5.0)


def test_client_detects_torn_stream(tmp_path):
    path = tmp_path / "torn.bin"
    path.write_bytes(b"\x00" * 30)
    app = create_app(StreamerConfig(source_path=str(path), chunk_size=10))
    server = make_server('127.0.0.1', 0, app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        with pytest.raises(RecordFormatError):
            StreamClient(f"http://127.0.0.1:{server.server_port}").fetch_all()
    finally:
        server.shutdown()
        thread.join(timeout=5.0)


def test_concurrent_sessions_at_different_rates(live_server):
    url, data = live_server
    results = {}

    def read(name, read_size, delay):
        received = b""
        for chunk in StreamClient(url, read_size=read_size).iter_bytes():
            received += chunk
            if delay:
                time.sleep(delay)
        results[name] = received

    slow = threading.Thread(target=read, args=('slow', 512, 0.001))
    fast = threading.Thread(target=read, args=('fast', 65536, 0))
    slow.start()
    fast.start()
    fast.join(timeout=30.0)

    # The fast reader is never held up by the slow one
    assert results['fast'] == data

    slow.join(timeout=30.0)
    assert results['slow'] == data
