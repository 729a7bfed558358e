"""
Tests for the playback cursor.

Tests sequential reading, relative time tracking, seeking forwards and
backwards, restart, and end-of-stream handling of truncated files.
"""

import io

import pytest

from mqttreplay.common.codec import RecordedMessage, encode_frame
from mqttreplay.common.errors import FileOpenFailure
from mqttreplay.replay.cursor import PlaybackCursor, open_recording


SCENARIO = [
    RecordedMessage(1000, 'a', b'\x01'),
    RecordedMessage(1500, 'b', b''),
    RecordedMessage(3000, 'a', b'\xab\xcd'),
]


def make_cursor(messages, trailing: bytes = b''):
    data = b''.join(encode_frame(m) for m in messages) + trailing
    return PlaybackCursor(io.BytesIO(data))


@pytest.fixture
def timeline():
    """Ten messages one second apart, with a duplicate timestamp at 4s."""
    messages = [RecordedMessage(50_000 + i * 1000, f't/{i}', bytes([i])) for i in range(10)]
    messages.insert(5, RecordedMessage(54_000, 't/dup', b'd'))
    return messages


class TestReadNext:
    """Test sequential reads."""

    def test_reads_in_recorded_order(self):
        """Test that frames come back in exactly the written order."""
        cursor = make_cursor(SCENARIO)

        assert [frame.message for frame in cursor] == SCENARIO

    def test_end_of_stream_signal(self):
        """Test that reading past the last frame returns None repeatedly."""
        cursor = make_cursor(SCENARIO[:1])

        assert cursor.read_next() is not None
        assert cursor.read_next() is None
        assert cursor.read_next() is None

    def test_empty_file(self):
        """Test that a 0-byte recording is end-of-stream on the first read."""
        cursor = make_cursor([])

        assert cursor.read_next() is None
        assert cursor.recording_start_millis is None

    def test_recording_start_and_relative_time(self):
        """Test that the start is the first frame and relative times follow."""
        cursor = make_cursor(SCENARIO)
        relatives = []
        for _ in cursor:
            relatives.append(cursor.current_relative_millis)

        assert cursor.recording_start_millis == 1000
        assert relatives == [0, 500, 2000]

    def test_relative_time_non_decreasing(self, timeline):
        """Test that relative times never decrease, duplicates included."""
        cursor = make_cursor(timeline)
        relatives = [cursor.relative_millis(frame.message) for frame in cursor]

        assert relatives == sorted(relatives)
        assert relatives.count(4000) == 2

    def test_frame_length(self):
        """Test that frames report the serialized body length."""
        cursor = make_cursor(SCENARIO)
        frame = cursor.read_next()

        assert frame.length == len(encode_frame(SCENARIO[0])) - 10

    def test_truncated_last_frame(self):
        """Test that a recording cut mid-frame ends cleanly after the intact frames."""
        data = b''.join(encode_frame(m) for m in SCENARIO)
        cursor = PlaybackCursor(io.BytesIO(data[:-2]))

        assert [frame.message for frame in cursor] == SCENARIO[:2]

    def test_trailing_garbage(self):
        """Test that garbage after the last frame is end-of-stream."""
        cursor = make_cursor(SCENARIO, trailing=b'\x08\x00\x00\x00\x00\x00\x00\x00\x00\x00garb')

        assert [frame.message for frame in cursor] == SCENARIO


class TestSeek:
    """Test seek_to_relative_time and restart_from_beginning."""

    def test_seek_forward_lands_on_first_at_or_after(self, timeline):
        """Test that seeking between timestamps lands on the next message."""
        cursor = make_cursor(timeline)

        frame = cursor.seek_to_relative_time(2500)

        assert frame.message.topic == 't/3'
        assert cursor.current_relative_millis == 3000

    def test_seek_exact_timestamp(self, timeline):
        """Test that a message exactly at the target is not skipped."""
        cursor = make_cursor(timeline)

        frame = cursor.seek_to_relative_time(4000)

        assert frame.message.topic == 't/4'

    def test_seek_returned_frame_is_not_discarded(self, timeline):
        """Test that reading after a seek continues after the returned frame."""
        cursor = make_cursor(timeline)

        cursor.seek_to_relative_time(4000)
        assert cursor.read_next().message.topic == 't/dup'
        assert cursor.read_next().message.topic == 't/5'

    def test_seek_backward_rewinds(self, timeline):
        """Test that a target behind the position re-scans from the file start."""
        cursor = make_cursor(timeline)
        cursor.seek_to_relative_time(8000)

        frame = cursor.seek_to_relative_time(2000)

        assert frame.message.topic == 't/2'
        assert cursor.recording_start_millis == 50_000

    def test_seek_zero_after_any_seeks(self, timeline):
        """Test that seeking to 0 always yields the first message of the file."""
        cursor = make_cursor(timeline)
        for target in (3000, 9000, 1000, 6000):
            cursor.seek_to_relative_time(target)

        assert cursor.seek_to_relative_time(0).message == timeline[0]
        assert cursor.current_relative_millis == 0

    def test_seek_matches_linear_scan(self, timeline):
        """Test seek results against a brute-force search for many targets."""
        cursor = make_cursor(timeline)

        for target in (0, 1, 999, 1000, 4000, 4001, 7500, 9000, 3000, 0, 8999):
            expected = next(m for m in timeline if m.captured_at_millis - 50_000 >= target)
            assert cursor.seek_to_relative_time(target).message == expected

    def test_seek_past_end(self, timeline):
        """Test that seeking beyond the last message is end-of-stream."""
        cursor = make_cursor(timeline)

        assert cursor.seek_to_relative_time(60_000) is None

    def test_seek_negative_clamps_to_start(self, timeline):
        """Test that negative targets behave like 0."""
        cursor = make_cursor(timeline)
        cursor.seek_to_relative_time(5000)

        assert cursor.seek_to_relative_time(-3000).message == timeline[0]

    def test_restart_from_beginning(self):
        """Test that restart returns the first frame after reading to the end."""
        cursor = make_cursor(SCENARIO)
        list(cursor)

        frame = cursor.restart_from_beginning()

        assert frame.message == SCENARIO[0]
        assert cursor.read_next().message == SCENARIO[1]

    def test_seek_in_scenario_with_start_offset(self):
        """Test that a 2000 ms start skips the first two scenario messages."""
        cursor = make_cursor(SCENARIO)

        frame = cursor.seek_to_relative_time(2000)

        assert frame.message == SCENARIO[2]
        assert cursor.read_next() is None


class TestOpenRecording:
    """Test opening recording files."""

    def test_open_existing(self, tmp_path):
        """Test that an existing recording opens and reads."""
        path = tmp_path / 'rec.mqtt'
        path.write_bytes(b''.join(encode_frame(m) for m in SCENARIO))

        with open_recording(str(path)) as f:
            assert [frame.message for frame in PlaybackCursor(f)] == SCENARIO

    def test_open_missing_raises(self, tmp_path):
        """Test that a missing file raises FileOpenFailure."""
        with pytest.raises(FileOpenFailure):
            open_recording(str(tmp_path / 'nope.mqtt'))

    def test_corrupt_huge_length_in_file_ends_stream(self, tmp_path):
        """Test that a trailing prefix claiming an enormous body ends playback cleanly."""
        path = tmp_path / 'corrupt.mqtt'
        path.write_bytes(
            encode_frame(SCENARIO[0])
            + b'\xfe\xff\xff\xff\xff\xff\xff\x7f\x00\x00'
            + b'junk'
        )

        with open_recording(str(path)) as f:
            cursor = PlaybackCursor(f)

            assert cursor.read_next().message == SCENARIO[0]
            assert cursor.read_next() is None
            assert cursor.seek_to_relative_time(0).message == SCENARIO[0]
