import io

import pytest

from zscatter.errors import IOOpenError
from zscatter.streamer import StreamSession, StreamState


class FlushingSink(io.BytesIO):
    def __init__(self):
        super().__init__()
        self.writes = []
        self.flushes = 0

    def write(self, data):
        self.writes.append(bytes(data))
        return super().write(data)

    def flush(self):
        self.flushes += 1


class DisconnectingSink:
    """Client that goes away after a number of chunks."""

    def __init__(self, accepted_chunks):
        self.accepted_chunks = accepted_chunks
        self.received = b""

    def write(self, data):
        if self.accepted_chunks == 0:
            raise BrokenPipeError("client disconnected")
        self.accepted_chunks -= 1
        self.received += data

    def flush(self):
        pass


class FailingHandle:
    def readinto(self, buffer):
        raise OSError(5, "Input/output error")

    def close(self):
        self.closed = True


def test_initial_state(odd_file):
    path, _ = odd_file
    session = StreamSession(str(path), 10)

    assert session.state == StreamState.IDLE
    assert session.bytes_sent == 0


def test_rejects_non_positive_chunk_size(odd_file):
    path, _ = odd_file
    with pytest.raises(ValueError):
        StreamSession(str(path), 0)


@pytest.mark.parametrize("chunk_size", [1, 10, 24, 100, 1 << 20])
def test_chunks_deliver_exact_bytes(odd_file, chunk_size):
    path, data = odd_file
    session = StreamSession(str(path), chunk_size).open()

    chunks = list(session.chunks())

    assert b"".join(chunks) == data
    assert all(len(c) == chunk_size for c in chunks[:-1])
    assert 0 < len(chunks[-1]) <= chunk_size
    assert session.state == StreamState.COMPLETED
    assert session.bytes_sent == len(data)


def test_stream_to_flushes_every_chunk(odd_file):
    path, data = odd_file
    sink = FlushingSink()

    state = StreamSession(str(path), 10).open().stream_to(sink)

    assert state == StreamState.COMPLETED
    assert sink.getvalue() == data
    assert len(sink.writes) == -(-len(data) // 10)
    assert sink.flushes == len(sink.writes)


def test_empty_file_completes(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    session = StreamSession(str(path), 10).open()

    assert list(session.chunks()) == []
    assert session.state == StreamState.COMPLETED


def test_open_missing_file_aborts(tmp_path):
    session = StreamSession(str(tmp_path / "missing.bin"), 10)

    with pytest.raises(IOOpenError):
        session.open()

    assert session.state == StreamState.ABORTED


def test_cannot_open_twice(odd_file):
    path, _ = odd_file
    session = StreamSession(str(path), 10).open()

    with pytest.raises(RuntimeError):
        session.open()
    session.close()


def test_client_disconnect_aborts_and_releases_handle(odd_file):
    path, data = odd_file
    session = StreamSession(str(path), 10).open()
    sink = DisconnectingSink(accepted_chunks=3)

    state = session.stream_to(sink)

    assert state == StreamState.ABORTED
    assert sink.received == data[:30]
    assert session._handle is None


def test_closing_iterator_early_aborts(odd_file):
    path, data = odd_file
    session = StreamSession(str(path), 10).open()

    chunks = session.chunks()
    first = next(chunks)
    chunks.close()

    assert first == data[:10]
    assert session.state == StreamState.ABORTED
    assert session._handle is None


def test_read_error_aborts_quietly(odd_file):
    path, _ = odd_file
    session = StreamSession(str(path), 10).open()
    session._handle.close()
    handle = FailingHandle()
    session._handle = handle

    assert list(session.chunks()) == []
    assert session.state == StreamState.ABORTED
    assert handle.closed


def test_close_without_streaming_releases_handle(odd_file):
    path, _ = odd_file
    session = StreamSession(str(path), 10).open()

    session.close()

    assert session.state == StreamState.ABORTED
    assert session._handle is None


def test_context_manager(odd_file):
    path, data = odd_file

    with StreamSession(str(path), 64) as session:
        received = b"".join(session)

    assert received == data
    assert session.state == StreamState.COMPLETED


def test_misaligned_file_is_logged_but_streamed(odd_file, caplog):
    path, data = odd_file

    with caplog.at_level("WARNING"):
        session = StreamSession(str(path), 100).open()
        received = b"".join(session)

    assert received == data
    assert "not a multiple of 24" in caplog.text


def test_interleaved_sessions_are_independent(record_file):
    path, data = record_file
    fast = StreamSession(str(path), 1000).open().chunks()
    slow = StreamSession(str(path), 7).open().chunks()

    fast_received = b""
    slow_received = b""
    for fast_chunk in fast:
        fast_received += fast_chunk
        slow_received += next(slow)
    slow_received += b"".join(slow)

    assert fast_received == data
    assert slow_received == data
