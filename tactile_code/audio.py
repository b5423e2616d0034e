"""
Audio Cue Mapper for Tactile Code

Element kind -> tone, and fire-and-forget playback:
- Static tone table with per-mapper user overrides
- Volume, speed and stereo position applied per trigger
- Bounded voice queue drained by one background worker
- Pluggable sinks (silent, WAV files, host callback)

Callers never wait for playback and never see device errors.

⠁⠥⠙⠊⠕
"""

import itertools
import queue
import random
import threading
import time
import wave
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import numpy as np
from loguru import logger

from .config import settings as app_settings
from .errors import AudioDeviceUnavailable
from .settings import AudioSettings
from .taxonomy import DEFAULT_TONE, TONE_TABLE, ElementKind, Envelope, ToneDescriptor, Waveform

SPATIAL_SPREAD = 0.4


@dataclass(frozen=True)
class PlaybackRequest:
    """One scaled cue on its way to the sink"""
    kind: str
    descriptor: ToneDescriptor
    amplitude: float
    pan: float = 0.0
    context: str = ""
    created: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "descriptor": self.descriptor.to_dict(),
            "amplitude": self.amplitude,
            "pan": self.pan,
            "context": self.context,
        }


# ---- Rendering ----

def envelope_curve(envelope: Envelope, n_samples: int, sample_rate: int) -> np.ndarray:
    """ADSR gain per sample; segments shrink proportionally when the tone is short"""
    duration = n_samples / sample_rate
    attack, decay, release = envelope.attack, envelope.decay, envelope.release
    segments = attack + decay + release
    if segments > duration and segments > 0:
        scale = duration / segments
        attack, decay, release = attack * scale, decay * scale, release * scale

    t = np.arange(n_samples) / sample_rate
    return np.interp(
        t,
        [0.0, attack, attack + decay, duration - release, duration],
        [0.0, 1.0, envelope.sustain, envelope.sustain, 0.0],
    )


def oscillator(waveform: Waveform, frequency: float, t: np.ndarray) -> np.ndarray:
    phase = 2 * np.pi * frequency * t
    if waveform == Waveform.SQUARE:
        return np.sign(np.sin(phase))
    if waveform == Waveform.TRIANGLE:
        return (2 / np.pi) * np.arcsin(np.sin(phase))
    if waveform == Waveform.SAWTOOTH:
        cycles = frequency * t
        return 2 * (cycles - np.floor(cycles + 0.5))
    return np.sin(phase)


def render_tone(
    descriptor: ToneDescriptor,
    sample_rate: int = 22050,
    amplitude: float = 1.0,
    pan: float = 0.0,
) -> np.ndarray:
    """
    Synthesize a cue as stereo float32 samples

    Args:
        descriptor: Tone to render (duration already scaled)
        sample_rate: Samples per second
        amplitude: Peak gain 0..1
        pan: Stereo position -1 (left) .. 1 (right)

    Returns:
        Array of shape (n_samples, 2)
    """
    n_samples = max(1, int(round(descriptor.duration * sample_rate)))
    t = np.arange(n_samples) / sample_rate
    mono = oscillator(descriptor.waveform, descriptor.frequency, t)
    mono = mono * envelope_curve(descriptor.envelope, n_samples, sample_rate) * amplitude

    # Equal-power pan
    angle = (min(1.0, max(-1.0, pan)) + 1) * np.pi / 4
    stereo = np.column_stack((mono * np.cos(angle), mono * np.sin(angle)))
    return stereo.astype(np.float32)


# ---- Sinks ----

class AudioSink:
    """Where rendered samples go. Sinks may raise AudioDeviceUnavailable or OSError."""
    available = True

    def play(self, samples: np.ndarray, sample_rate: int, request: PlaybackRequest):
        raise NotImplementedError


class NullSink(AudioSink):
    """No playback device: triggers become silent no-ops"""
    available = False

    def play(self, samples, sample_rate, request):
        raise AudioDeviceUnavailable("No audio output device")


class WavFileSink(AudioSink):
    """Writes every cue as a 16-bit stereo WAV file"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self._counter = itertools.count(1)

    def play(self, samples, sample_rate, request):
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / f"{next(self._counter):05d}-{request.kind or 'cue'}.wav"
        frames = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
        with wave.open(str(path), "wb") as wav:
            wav.setnchannels(2)
            wav.setsampwidth(2)
            wav.setframerate(sample_rate)
            wav.writeframes(frames.tobytes())
        logger.debug(f"Wrote cue {path}")


class CallbackSink(AudioSink):
    """Hands samples to a host-provided callable"""

    def __init__(self, callback: Callable[[np.ndarray, int, PlaybackRequest], None]):
        self.callback = callback

    def play(self, samples, sample_rate, request):
        self.callback(samples, sample_rate, request)


def create_sink(name: Optional[str] = None) -> AudioSink:
    """Sink named by configuration"""
    name = name or app_settings.audio_sink
    if name == "wav":
        return WavFileSink(app_settings.wav_output_dir)
    return NullSink()


RequestListener = Callable[[PlaybackRequest], None]


class CueMapper:
    """
    Maps element kinds to tones and plays them without blocking.

    Overrides are local to this mapper; the shared TONE_TABLE is read-only.
    At most max_voices requests wait for the worker; when full, the oldest
    pending request is dropped.
    """

    def __init__(
        self,
        sink: Optional[AudioSink] = None,
        audio_settings: Optional[AudioSettings] = None,
        sample_rate: Optional[int] = None,
        max_voices: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.sink = sink or create_sink()
        self.audio_settings = audio_settings or AudioSettings()
        self.sample_rate = sample_rate or app_settings.sample_rate
        self.max_voices = max(1, max_voices or app_settings.max_voices)
        self._rng = rng or random.Random()
        self._overrides: Dict[str, ToneDescriptor] = {}
        self._listeners: List[RequestListener] = []
        self._queue: "queue.Queue[Optional[PlaybackRequest]]" = queue.Queue(maxsize=self.max_voices)
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._warned_unavailable = False
        self.dropped = 0

    # ---- Lookup ----

    def cue_for(self, kind: Union[str, ElementKind]) -> ToneDescriptor:
        """Override, then the static table, then the default tone"""
        key = kind.value if isinstance(kind, ElementKind) else str(kind).strip().lower()
        if key in self._overrides:
            return self._overrides[key]
        return TONE_TABLE.get(key, DEFAULT_TONE)

    def override(self, kind: Union[str, ElementKind], descriptor: ToneDescriptor):
        key = kind.value if isinstance(kind, ElementKind) else str(kind).strip().lower()
        self._overrides[key] = descriptor
        logger.info(f"Cue override for {key}: {descriptor.frequency} Hz {descriptor.waveform.value}")

    def reset(self, kind: Union[str, ElementKind, None] = None):
        """Drop one override, or all of them"""
        if kind is None:
            self._overrides.clear()
            return
        key = kind.value if isinstance(kind, ElementKind) else str(kind).strip().lower()
        self._overrides.pop(key, None)

    @property
    def overrides(self) -> Dict[str, ToneDescriptor]:
        return dict(self._overrides)

    # ---- Playback ----

    def add_listener(self, listener: RequestListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: RequestListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def prepare(
        self,
        descriptor: ToneDescriptor,
        context: str = "",
        kind: str = "",
        duration: Optional[float] = None,
        audio_settings: Optional[AudioSettings] = None,
    ) -> PlaybackRequest:
        """Apply volume, speed and stereo position without touching the descriptor"""
        audio_settings = audio_settings or self.audio_settings
        base_duration = duration if duration is not None else descriptor.duration
        pan = self._rng.uniform(-SPATIAL_SPREAD, SPATIAL_SPREAD) if audio_settings.spatial else 0.0
        return PlaybackRequest(
            kind=kind,
            descriptor=replace(descriptor, duration=base_duration / audio_settings.playback_speed),
            amplitude=audio_settings.volume,
            pan=pan,
            context=context,
            created=time.time(),
        )

    def trigger(
        self,
        descriptor: ToneDescriptor,
        context: str = "",
        kind: str = "",
        duration: Optional[float] = None,
        audio_settings: Optional[AudioSettings] = None,
    ) -> Optional[PlaybackRequest]:
        """
        Queue a cue and return immediately

        Args:
            descriptor: Tone to play
            context: Announcement text for assistive technology
            kind: Cue name, used by sinks and listeners
            duration: Replaces the descriptor's duration before speed scaling
            audio_settings: Per-call scalars, defaults to the mapper's

        Returns:
            The scaled request, or None when audio is disabled
        """
        audio_settings = audio_settings or self.audio_settings
        if not audio_settings.enabled:
            return None

        request = self.prepare(descriptor, context, kind, duration, audio_settings)
        for listener in list(self._listeners):
            try:
                listener(request)
            except Exception:
                logger.exception(f"Cue listener failed for {kind or 'cue'}")

        if not self.sink.available:
            self._note_unavailable("sink reports no device")
            return request

        self._ensure_worker()
        self._enqueue(request)
        return request

    def play_kind(self, kind: Union[str, ElementKind], context: str = "", duration: Optional[float] = None) -> Optional[PlaybackRequest]:
        """Look up and trigger the cue for a kind"""
        key = kind.value if isinstance(kind, ElementKind) else str(kind)
        return self.trigger(self.cue_for(kind), context=context, kind=key, duration=duration)

    def _enqueue(self, request: Optional[PlaybackRequest]):
        while True:
            try:
                self._queue.put_nowait(request)
                return
            except queue.Full:
                try:
                    stale = self._queue.get_nowait()
                except queue.Empty:
                    continue
                self._queue.task_done()
                if stale is None:
                    # Never lose a shutdown marker
                    self._queue.put_nowait(None)
                    return
                self.dropped += 1
                logger.debug(f"Voice limit reached, dropped {stale.kind or 'cue'}")

    def _ensure_worker(self):
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(target=self._run, name="tactile-code-audio", daemon=True)
            self._worker.start()
            logger.info(f"Audio worker started ({type(self.sink).__name__}, {self.max_voices} voices)")

    def _run(self):
        while True:
            request = self._queue.get()
            try:
                if request is None:
                    return
                samples = render_tone(request.descriptor, self.sample_rate, request.amplitude, request.pan)
                self.sink.play(samples, self.sample_rate, request)
            except (AudioDeviceUnavailable, OSError) as exc:
                self._note_unavailable(str(exc))
            except Exception:
                logger.exception(f"Audio worker failed on {request.kind if request else 'shutdown'}")
            finally:
                self._queue.task_done()

    def _note_unavailable(self, reason: str):
        if not self._warned_unavailable:
            self._warned_unavailable = True
            logger.warning(f"Audio output unavailable, cues are silent: {reason}")
        else:
            logger.debug(f"Audio output unavailable: {reason}")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued cue has been handled; False on timeout"""
        with self._queue.all_tasks_done:
            return self._queue.all_tasks_done.wait_for(
                lambda: self._queue.unfinished_tasks == 0, timeout
            )

    def close(self, timeout: float = 1.0):
        """Stop the worker after it drains pending cues"""
        with self._lock:
            worker = self._worker
            self._worker = None
        if worker is None or not worker.is_alive():
            return
        self._enqueue(None)
        worker.join(timeout)
        logger.info("Audio worker stopped")
