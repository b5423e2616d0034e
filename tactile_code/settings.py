"""
Per-call settings

Immutable settings objects passed by value into the scanner, index and
braille engine. Hosts send camelCase JSON; Python code uses snake_case.
Malformed values never fail the pipeline: they fall back to defaults.
"""

from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .taxonomy import BrailleGrade, ElementKind, SortKey, SortOrder, parse_kind

DEFAULT_CELLS_PER_LINE = 40


def _enum_or_default(enum_cls, value, default, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown {field_name} {value!r}, using {default.value!r}")
        return default


class _FrozenSettings(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]] = None):
        """
        Build settings from host data, replacing every invalid field with
        its default instead of raising.
        """
        payload: Dict[str, Any] = dict(data or {})
        for _ in range(len(cls.model_fields) + 1):
            try:
                return cls.model_validate(payload)
            except ValidationError as exc:
                for error in exc.errors():
                    key = error["loc"][0] if error["loc"] else None
                    logger.warning(f"Invalid setting {key!r}: {error['msg']}; using default")
                    _drop_field(cls, payload, key)
        return cls()

    def updated(self, **changes):
        """Copy with changes applied, validated the same way as from_mapping"""
        return self.from_mapping({**self.model_dump(), **changes})


def _drop_field(cls, payload: Dict[str, Any], key) -> None:
    payload.pop(key, None)
    for name, info in cls.model_fields.items():
        if key in (name, info.alias):
            payload.pop(name, None)
            payload.pop(info.alias, None)


class CoreSettings(_FrozenSettings):
    """Options recognised by the index and the braille engine"""
    show_line_numbers: bool = True
    show_scope: bool = True
    show_complexity: bool = False
    group_by_type: bool = False
    sort_by: SortKey = SortKey.LINE
    sort_order: SortOrder = SortOrder.ASC
    filter_kinds: FrozenSet[ElementKind] = frozenset()
    grade: BrailleGrade = BrailleGrade.GRADE2
    cells_per_line: int = DEFAULT_CELLS_PER_LINE
    contractions_enabled: bool = True
    computer_braille: bool = True
    preserve_formatting: bool = True

    @field_validator("sort_by", mode="before")
    @classmethod
    def _sort_by(cls, value):
        return _enum_or_default(SortKey, value, SortKey.LINE, "sortBy")

    @field_validator("sort_order", mode="before")
    @classmethod
    def _sort_order(cls, value):
        return _enum_or_default(SortOrder, value, SortOrder.ASC, "sortOrder")

    @field_validator("grade", mode="before")
    @classmethod
    def _grade(cls, value):
        return _enum_or_default(BrailleGrade, value, BrailleGrade.GRADE2, "grade")

    @field_validator("filter_kinds", mode="before")
    @classmethod
    def _filter_kinds(cls, value):
        if value is None:
            return frozenset()
        if isinstance(value, (str, ElementKind)):
            value = [value]
        elif not isinstance(value, Iterable) or isinstance(value, Mapping):
            logger.warning(f"Invalid filterKinds {value!r}, using no filter")
            return frozenset()
        kinds = set()
        for item in value:
            kind = parse_kind(item)
            if kind is None:
                logger.warning(f"Ignoring unknown element kind {item!r} in filterKinds")
                continue
            kinds.add(kind)
        return frozenset(kinds)

    @field_validator("cells_per_line", mode="before")
    @classmethod
    def _cells_per_line(cls, value):
        try:
            cells = int(value)
        except (TypeError, ValueError, OverflowError):
            cells = 0
        if cells <= 0:
            logger.warning(f"Invalid cellsPerLine {value!r}, using {DEFAULT_CELLS_PER_LINE}")
            return DEFAULT_CELLS_PER_LINE
        return cells

    @property
    def contractions_active(self) -> bool:
        return self.contractions_enabled and self.grade == BrailleGrade.GRADE2


class AudioSettings(_FrozenSettings):
    """Caller-side scalars applied to every cue"""
    enabled: bool = True
    volume: float = 0.5
    playback_speed: float = 1.0
    spatial: bool = False

    @field_validator("volume", mode="before")
    @classmethod
    def _volume(cls, value):
        try:
            return min(1.0, max(0.0, float(value)))
        except (TypeError, ValueError, OverflowError):
            return 0.5

    @field_validator("playback_speed", mode="before")
    @classmethod
    def _playback_speed(cls, value):
        try:
            speed = float(value)
        except (TypeError, ValueError, OverflowError):
            return 1.0
        return speed if speed > 0 else 1.0
