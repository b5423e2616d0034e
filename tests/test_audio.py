"""Tests for the audio cue mapper."""

import random
import threading
import time
import wave
from pathlib import Path

import numpy as np
import pytest

from tactile_code.audio import (
    AudioSink,
    CallbackSink,
    CueMapper,
    NullSink,
    WavFileSink,
    envelope_curve,
    render_tone,
)
from tactile_code.errors import AudioDeviceUnavailable
from tactile_code.settings import AudioSettings
from tactile_code.taxonomy import (
    DEFAULT_TONE,
    TONE_TABLE,
    ElementKind,
    Envelope,
    ToneDescriptor,
    Waveform,
)


class BlockingSink(AudioSink):
    """Holds the worker inside play() until released."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self.played = []

    def play(self, samples, sample_rate, request):
        self.release.wait(5)
        self.played.append(request)


class BrokenSink(AudioSink):
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    def play(self, samples, sample_rate, request):
        self.calls += 1
        raise self.error


class TestCueLookup:
    """Tests for kind -> tone lookup."""

    def test_function_tone_is_the_table_entry(self, silent_mapper: CueMapper) -> None:
        tone = silent_mapper.cue_for(ElementKind.FUNCTION)
        assert tone is TONE_TABLE["function"]
        assert tone.frequency == 440
        assert tone.duration == 0.5
        assert tone.waveform == Waveform.SINE

    def test_kinds_without_tone_get_default(self, silent_mapper: CueMapper) -> None:
        assert silent_mapper.cue_for(ElementKind.IMPORT) is DEFAULT_TONE
        assert silent_mapper.cue_for("export") is DEFAULT_TONE
        assert silent_mapper.cue_for("nonsense") is DEFAULT_TONE

    def test_named_cues(self, silent_mapper: CueMapper) -> None:
        assert silent_mapper.cue_for("operator").frequency == 1100
        assert silent_mapper.cue_for("String").frequency == 880

    def test_override_and_reset(self, silent_mapper: CueMapper) -> None:
        custom = ToneDescriptor(300, 0.2, Waveform.SQUARE)
        silent_mapper.override(ElementKind.LOOP, custom)
        assert silent_mapper.cue_for("loop") is custom
        assert TONE_TABLE["loop"].frequency == 220
        silent_mapper.reset("loop")
        assert silent_mapper.cue_for("loop") is TONE_TABLE["loop"]

    def test_overrides_are_per_mapper(self, silent_mapper: CueMapper) -> None:
        silent_mapper.override("class", ToneDescriptor(100, 0.1))
        other = CueMapper(sink=NullSink())
        assert other.cue_for("class") is TONE_TABLE["class"]

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            TONE_TABLE["function"] = DEFAULT_TONE


class TestTrigger:
    """Tests for scaling and non-blocking playback."""

    def test_speed_and_volume_scale_without_mutation(self) -> None:
        mapper = CueMapper(sink=NullSink(), audio_settings=AudioSettings(volume=0.8, playback_speed=2.0))
        tone = mapper.cue_for("function")
        request = mapper.trigger(tone, kind="function")
        assert request.descriptor.duration == pytest.approx(0.25)
        assert request.amplitude == 0.8
        assert request.descriptor.frequency == 440
        assert tone.duration == 0.5

    def test_duration_override(self, silent_mapper: CueMapper) -> None:
        request = silent_mapper.play_kind("function", duration=0.1)
        assert request.descriptor.duration == pytest.approx(0.1)

    def test_disabled_audio(self) -> None:
        mapper = CueMapper(sink=NullSink(), audio_settings=AudioSettings(enabled=False))
        assert mapper.trigger(DEFAULT_TONE) is None

    def test_spatial_pan_is_random_and_bounded(self) -> None:
        mapper = CueMapper(
            sink=NullSink(),
            audio_settings=AudioSettings(spatial=True),
            rng=random.Random(7),
        )
        pans = [mapper.trigger(DEFAULT_TONE).pan for _ in range(20)]
        assert all(-0.4 <= pan <= 0.4 for pan in pans)
        assert len(set(pans)) > 1

    def test_no_pan_without_spatial(self, silent_mapper: CueMapper) -> None:
        assert silent_mapper.trigger(DEFAULT_TONE).pan == 0.0

    def test_null_sink_is_silent_noop(self, silent_mapper: CueMapper) -> None:
        request = silent_mapper.trigger(DEFAULT_TONE, context="hello")
        assert request.context == "hello"
        assert silent_mapper._worker is None
        assert silent_mapper.requests == [request]

    def test_trigger_does_not_block(self) -> None:
        sink = BlockingSink()
        mapper = CueMapper(sink=sink, max_voices=2)
        try:
            started = time.monotonic()
            mapper.trigger(DEFAULT_TONE)
            assert time.monotonic() - started < 0.5
        finally:
            sink.release.set()
            mapper.close()

    def test_oldest_pending_voice_is_dropped(self) -> None:
        sink = BlockingSink()
        mapper = CueMapper(sink=sink, max_voices=2)
        try:
            for index in range(8):
                mapper.trigger(DEFAULT_TONE, kind=f"cue{index}")
            assert mapper.dropped >= 5
            sink.release.set()
            assert mapper.wait_idle(5)
            assert sink.played[-1].kind == "cue7"
            assert len(sink.played) <= 3
        finally:
            sink.release.set()
            mapper.close()

    def test_callback_sink_receives_stereo_samples(self) -> None:
        received = []
        mapper = CueMapper(sink=CallbackSink(lambda samples, rate, request: received.append((samples, rate))))
        try:
            mapper.play_kind("operator")
            assert mapper.wait_idle(5)
        finally:
            mapper.close()
        samples, rate = received[0]
        assert samples.shape == (int(round(0.1 * rate)), 2)
        assert samples.dtype == np.float32

    @pytest.mark.parametrize("error", [AudioDeviceUnavailable("gone"), OSError("busy")])
    def test_device_errors_are_contained(self, error: Exception) -> None:
        sink = BrokenSink(error)
        mapper = CueMapper(sink=sink)
        try:
            mapper.trigger(DEFAULT_TONE)
            mapper.trigger(DEFAULT_TONE)
            assert mapper.wait_idle(5)
            assert sink.calls >= 1
        finally:
            mapper.close()

    def test_failing_listener_is_contained(self, silent_mapper: CueMapper) -> None:
        def broken(request):
            raise ValueError("listener")

        silent_mapper.add_listener(broken)
        assert silent_mapper.trigger(DEFAULT_TONE) is not None

    def test_wav_sink_writes_files(self, tmp_path: Path) -> None:
        mapper = CueMapper(sink=WavFileSink(tmp_path / "cues"), sample_rate=8000)
        try:
            mapper.play_kind(ElementKind.FUNCTION)
            assert mapper.wait_idle(5)
        finally:
            mapper.close()
        files = list((tmp_path / "cues").glob("*.wav"))
        assert len(files) == 1
        assert files[0].name.endswith("-function.wav")
        with wave.open(str(files[0]), "rb") as wav:
            assert wav.getnchannels() == 2
            assert wav.getsampwidth() == 2
            assert wav.getframerate() == 8000
            assert wav.getnframes() == 4000


class TestRendering:
    """Tests for tone synthesis."""

    @pytest.mark.parametrize("waveform", list(Waveform))
    def test_amplitude_bounded(self, waveform: Waveform) -> None:
        tone = ToneDescriptor(440, 0.2, waveform)
        samples = render_tone(tone, 8000, amplitude=0.5)
        assert samples.shape == (1600, 2)
        assert np.abs(samples).max() <= 0.5 + 1e-6

    def test_hard_left_pan(self) -> None:
        samples = render_tone(ToneDescriptor(440, 0.1), 8000, pan=-1.0)
        assert np.abs(samples[:, 1]).max() < 1e-6
        assert np.abs(samples[:, 0]).max() > 0.1

    def test_envelope_shape(self) -> None:
        curve = envelope_curve(Envelope(0.1, 0.1, 0.5, 0.1), 1000, 1000)
        assert curve[0] == 0.0
        assert curve[100] == pytest.approx(1.0)
        assert curve[500] == pytest.approx(0.5)
        assert curve[-1] < 0.05

    def test_short_tone_compresses_envelope(self) -> None:
        curve = envelope_curve(Envelope(0.1, 0.2, 0.7, 0.3), 100, 1000)
        assert curve.max() <= 1.0
        assert len(curve) == 100
