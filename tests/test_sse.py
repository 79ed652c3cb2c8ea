"""Tests for the Server-Sent Events output sink."""

import threading
import time

import pytest

from docchat.client.sse import SSEOutputSink, format_sse
from docchat.errors import GenerationError, SinkClosedError


class TestFormatSse:
    """Tests for format_sse."""

    def test_single_line(self):
        assert format_sse("token", "Hello") == "event: token\ndata: Hello\n\n"

    def test_empty_payload(self):
        """Test that an empty payload still carries a data line."""
        assert format_sse("done", "") == "event: done\ndata: \n\n"

    def test_multiline_payload(self):
        """Test that newlines are split across data lines."""
        assert format_sse("token", "a\nb") == "event: token\ndata: a\ndata: b\n\n"


class TestSSEOutputSink:
    """Tests for SSEOutputSink."""

    def test_stream_yields_until_close(self):
        """Test that queued events are yielded and close ends the stream."""
        sink = SSEOutputSink()
        sink.send("token", "A")
        sink.send("done", "")
        sink.close()

        assert list(sink.stream()) == ["event: token\ndata: A\n\n", "event: done\ndata: \n\n"]
        assert sink.disconnected

    def test_failure_aborts_stream(self):
        """Test that a failure raises out of the response generator."""
        sink = SSEOutputSink()
        sink.send("token", "A")
        sink.fail(RuntimeError("model crashed"))
        sink.close()

        stream = sink.stream()
        assert next(stream) == "event: token\ndata: A\n\n"
        with pytest.raises(GenerationError):
            next(stream)

    def test_send_after_disconnect_raises(self):
        """Test that closing the response generator marks the client as gone."""
        sink = SSEOutputSink()
        sink.send("token", "A")
        stream = sink.stream()
        next(stream)
        stream.close()

        with pytest.raises(SinkClosedError):
            sink.send("token", "B")

    def test_send_after_close_raises(self):
        sink = SSEOutputSink()
        sink.close()
        sink.close()
        with pytest.raises(SinkClosedError):
            sink.send("token", "late")

    def test_idle_timeout_ends_stream(self):
        """Test that a sink nobody writes to ends the response without done."""
        sink = SSEOutputSink(idle_timeout=0.05)
        sink.send("token", "A")

        assert list(sink.stream()) == ["event: token\ndata: A\n\n"]
        assert sink.disconnected
        with pytest.raises(SinkClosedError):
            sink.send("token", "late")

    def test_idle_timeout_resets_per_event(self):
        """Test that a slow but steady producer is not cut off."""
        sink = SSEOutputSink(idle_timeout=0.5)

        def produce():
            for token in ("A", "B", "C"):
                time.sleep(0.2)
                sink.send("token", token)
            sink.close()

        producer = threading.Thread(target=produce)
        producer.start()
        events = list(sink.stream())
        producer.join()

        assert len(events) == 3
