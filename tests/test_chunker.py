"""Tests for bounded-duration audio chunking."""

from __future__ import annotations

import numpy as np
import pytest

from agentwire.audio.chunker import AudioChunker, SampleRange, plan_ranges, split_audio
from agentwire.schemas.audio import PcmAudio

_RATE = 100  # small rate keeps long durations cheap


def _make_audio(seconds: float, channels: int = 1, rate: int = _RATE) -> PcmAudio:
    frames = int(round(seconds * rate))
    ramp = np.arange(frames, dtype=np.float32) / max(frames, 1)
    samples = np.repeat(ramp[:, None], channels, axis=1)
    return PcmAudio(samples=samples, sample_rate=rate)


class TestPlanRanges:
    def test_250s_at_120s(self):
        ranges = plan_ranges(250 * _RATE, _RATE, 120)
        assert ranges == [
            SampleRange(0, 120 * _RATE),
            SampleRange(120 * _RATE, 240 * _RATE),
            SampleRange(240 * _RATE, 250 * _RATE),
        ]

    def test_short_audio_is_single_range(self):
        assert plan_ranges(90 * _RATE, _RATE, 120) == [SampleRange(0, 90 * _RATE)]

    def test_exact_multiple_has_no_empty_tail(self):
        ranges = plan_ranges(240 * _RATE, _RATE, 120)
        assert len(ranges) == 2
        assert ranges[-1].end == 240 * _RATE

    def test_duration_equal_to_threshold_is_single_range(self):
        assert len(plan_ranges(120 * _RATE, _RATE, 120)) == 1

    def test_ranges_cover_without_gaps_or_overlap(self):
        frames = 12_345
        ranges = plan_ranges(frames, _RATE, 7.3)
        assert ranges[0].start == 0
        assert ranges[-1].end == frames
        for prev, nxt in zip(ranges, ranges[1:]):
            assert prev.end == nxt.start
        assert sum(r.length for r in ranges) == frames

    def test_fractional_chunk_frames_never_exceed_threshold(self):
        # 0.3s at 5 Hz is 1.5 frames; a 2-frame chunk would last 0.4s
        assert plan_ranges(2, 5, 0.3) == [SampleRange(0, 1), SampleRange(1, 2)]

        for frames, rate, seconds in [(2, 5, 0.3), (1000, 3, 0.5), (44_100, 44_100, 0.33)]:
            ranges = plan_ranges(frames, rate, seconds)
            assert all(r.length / rate <= seconds for r in ranges)
            assert sum(r.length for r in ranges) == frames

    def test_empty_audio_has_no_ranges(self):
        assert plan_ranges(0, _RATE, 120) == []

    def test_non_positive_chunk_seconds_rejected(self):
        with pytest.raises(ValueError):
            plan_ranges(100, _RATE, 0)


class TestAudioChunker:
    def test_chunks_carry_times_and_samples(self):
        audio = _make_audio(250, channels=2)
        chunks = split_audio(audio, 120)

        assert [c.index for c in chunks] == [0, 1, 2]
        assert [(c.start_seconds, c.end_seconds) for c in chunks] == [
            (0.0, 120.0), (120.0, 240.0), (240.0, 250.0),
        ]
        assert chunks[2].audio.frames == 10 * _RATE
        assert chunks[2].audio.channels == 2
        assert chunks[2].duration == pytest.approx(10.0)
        np.testing.assert_array_equal(
            np.concatenate([c.audio.samples for c in chunks]), audio.samples
        )

    def test_chunks_do_not_share_memory_with_source(self):
        audio = _make_audio(250)
        chunk = split_audio(audio, 120)[0]
        chunk.audio.samples[0, 0] = 9.0
        assert audio.samples[0, 0] != 9.0

    def test_progress_reports_current_of_total(self):
        chunker = AudioChunker(_make_audio(250), 120)
        assert len(chunker) == 3
        assert [(p.current, p.total) for p in chunker] == [(1, 3), (2, 3), (3, 3)]

    def test_iteration_is_lazy(self):
        iterator = iter(AudioChunker(_make_audio(250), 120))
        first = next(iterator)
        assert first.current == 1

    def test_iteration_restarts(self):
        chunker = AudioChunker(_make_audio(250), 120)
        first = [p.chunk.start_seconds for p in chunker]
        second = [p.chunk.start_seconds for p in chunker]
        assert first == second == [0.0, 120.0, 240.0]

    def test_short_audio_single_chunk(self):
        chunks = AudioChunker(_make_audio(30), 120).chunks()
        assert len(chunks) == 1
        assert chunks[0].end_seconds == pytest.approx(30.0)

    def test_one_dimensional_samples_become_mono(self):
        audio = PcmAudio(samples=np.zeros(50, dtype=np.float32), sample_rate=_RATE)
        assert audio.channels == 1
        assert audio.frames == 50
