"""
Tactile Code Taxonomy

Static vocabulary shared by every component:
- Element kinds the scanner can emit
- Navigation actions and sort keys
- Waveforms, envelopes and the kind → tone table
- Search boosts per kind

⠞⠁⠭⠕⠝⠕⠍⠽
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class ElementKind(str, Enum):
    """Kinds of syntactic elements (closed set)"""
    FUNCTION = "function"
    CLASS = "class"
    VARIABLE = "variable"
    COMMENT = "comment"
    IMPORT = "import"
    EXPORT = "export"
    LOOP = "loop"
    CONDITIONAL = "conditional"

    @property
    def plural_label(self) -> str:
        return f"{self.value.capitalize()}s"


class ActionKind(str, Enum):
    """How an element was reached"""
    NAVIGATE = "navigate"
    SEARCH = "search"
    JUMP = "jump"


class SortKey(str, Enum):
    NAME = "name"
    LINE = "line"
    COMPLEXITY = "complexity"
    TYPE = "type"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class BrailleGrade(str, Enum):
    GRADE1 = "grade1"
    GRADE2 = "grade2"


class Waveform(str, Enum):
    """Oscillator shapes for audio cues"""
    SINE = "sine"
    SQUARE = "square"
    TRIANGLE = "triangle"
    SAWTOOTH = "sawtooth"


@dataclass(frozen=True)
class Envelope:
    """ADSR envelope: attack/decay/release in seconds, sustain as a 0..1 level"""
    attack: float = 0.1
    decay: float = 0.2
    sustain: float = 0.7
    release: float = 0.3

    def to_dict(self) -> dict:
        return {
            "attack": self.attack,
            "decay": self.decay,
            "sustain": self.sustain,
            "release": self.release,
        }


@dataclass(frozen=True)
class ToneDescriptor:
    """One playable audio cue"""
    frequency: float
    duration: float
    waveform: Waveform = Waveform.SINE
    envelope: Envelope = Envelope()

    def to_dict(self) -> dict:
        return {
            "frequency": self.frequency,
            "duration": self.duration,
            "waveform": self.waveform.value,
            "envelope": self.envelope.to_dict(),
        }


# Cue names that are not element kinds but still have tones
CUE_STRING = "string"
CUE_NUMBER = "number"
CUE_OPERATOR = "operator"
CUE_KEYWORD = "keyword"

_TONES = {
    ElementKind.FUNCTION.value: ToneDescriptor(
        440, 0.5, Waveform.SINE, Envelope(0.1, 0.2, 0.7, 0.3)),
    ElementKind.VARIABLE.value: ToneDescriptor(
        330, 0.3, Waveform.TRIANGLE, Envelope(0.05, 0.1, 0.8, 0.2)),
    ElementKind.CLASS.value: ToneDescriptor(
        550, 0.6, Waveform.SQUARE, Envelope(0.15, 0.25, 0.6, 0.4)),
    ElementKind.LOOP.value: ToneDescriptor(
        220, 0.4, Waveform.SAWTOOTH, Envelope(0.08, 0.15, 0.75, 0.25)),
    ElementKind.CONDITIONAL.value: ToneDescriptor(
        660, 0.35, Waveform.SINE, Envelope(0.06, 0.12, 0.82, 0.18)),
    ElementKind.COMMENT.value: ToneDescriptor(
        110, 0.2, Waveform.TRIANGLE, Envelope(0.03, 0.08, 0.9, 0.15)),
    CUE_STRING: ToneDescriptor(
        880, 0.25, Waveform.SINE, Envelope(0.04, 0.09, 0.85, 0.12)),
    CUE_NUMBER: ToneDescriptor(
        440, 0.15, Waveform.SQUARE, Envelope(0.02, 0.05, 0.95, 0.08)),
    CUE_OPERATOR: ToneDescriptor(
        1100, 0.1, Waveform.TRIANGLE, Envelope(0.01, 0.03, 0.98, 0.05)),
    CUE_KEYWORD: ToneDescriptor(
        770, 0.3, Waveform.SAWTOOTH, Envelope(0.07, 0.13, 0.78, 0.22)),
}

# Read-only view; overrides live on the cue mapper, never here
TONE_TABLE: Mapping[str, ToneDescriptor] = MappingProxyType(_TONES)
DEFAULT_TONE: ToneDescriptor = _TONES[CUE_KEYWORD]

# Added to a search score once at least one field matched
KIND_SEARCH_BOOST: Mapping[ElementKind, int] = MappingProxyType({
    ElementKind.FUNCTION: 20,
    ElementKind.CLASS: 15,
    ElementKind.VARIABLE: 10,
    ElementKind.IMPORT: 5,
    ElementKind.EXPORT: 5,
})

GLOBAL_SCOPE = "global"
GROUP_SCOPE = "group"


def parse_kind(value) -> Optional[ElementKind]:
    """Resolve a kind from an enum member or its string value; None if unknown"""
    if isinstance(value, ElementKind):
        return value
    try:
        return ElementKind(str(value).strip().lower())
    except ValueError:
        return None
