"""
Braille Transliteration Engine

Renders source code as Unicode braille, line by line:
1. Optional line number (three digit cells and a separator)
2. Optional indentation cells
3. Left to right: contraction, operator, digit run, single character

Total over every input: anything unmapped becomes the replacement glyph.

⠃⠗⠁⠊⠇⠇⠑
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from loguru import logger

from .braille_tables import (
    CHARACTER_GLYPHS,
    DECIMAL_POINT,
    IDENTIFIER_CHAR,
    IDENTIFIER_WORD,
    INDENT_GLYPH,
    LINE_NUMBER_SEPARATOR,
    NUMBER_INDICATOR,
    OPERATOR_GLYPHS,
    OPERATORS_BY_LENGTH,
    PROGRAMMING_CONTRACTIONS,
    BrailleGlyph,
    cell_dots,
    glyph_for_character,
    make_glyph,
)
from .settings import CoreSettings

DIGIT_RUN_RE = re.compile(r"[0-9]+(?:\.[0-9]+)*")
DISPLAY_ROWS = 10


@dataclass(frozen=True)
class BrailleStats:
    total_characters: int
    braille_cells: int
    contractions: int
    compression_ratio: float
    accuracy: float

    def to_dict(self) -> Dict:
        return {
            "total_characters": self.total_characters,
            "braille_cells": self.braille_cells,
            "contractions": self.contractions,
            "compression_ratio": self.compression_ratio,
            "accuracy": self.accuracy,
        }


EMPTY_STATS = BrailleStats(0, 0, 0, 0.0, 0.0)


def validate_contractions(table: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Keep only identifier-word keys with non-empty glyphs, lowercased"""
    valid: Dict[str, str] = {}
    for word, glyphs in (table or {}).items():
        if not isinstance(word, str) or not IDENTIFIER_WORD.match(word):
            logger.warning(f"Ignoring contraction for {word!r}: not an identifier word")
            continue
        if not isinstance(glyphs, str) or not glyphs:
            logger.warning(f"Ignoring contraction for {word!r}: empty glyphs")
            continue
        valid[word.lower()] = glyphs
    return valid


def digit_glyphs(digits: str) -> str:
    return "".join(
        DECIMAL_POINT if c == "." else CHARACTER_GLYPHS[c]
        for c in digits
    )


def line_number_glyph(number: int) -> BrailleGlyph:
    label = f"{number:03d}"
    return make_glyph(label, digit_glyphs(label) + LINE_NUMBER_SEPARATOR + " ", f"Line {number}")


def indent_levels(line: str) -> Tuple[int, int]:
    """
    Leading columns that form whole indent levels, and the level count.
    A tab or a pair of spaces is one level; an odd space is left to render.
    """
    pos = depth = 0
    while pos < len(line):
        if line[pos] == "\t":
            pos += 1
        elif line.startswith("  ", pos):
            pos += 2
        else:
            break
        depth += 1
    return pos, depth


def compute_stats(text: str, braille_text: str, contractions: int) -> BrailleStats:
    total = len(text)
    if total == 0:
        return EMPTY_STATS
    cells = sum(1 for c in braille_text if not c.isspace())
    accuracy = 100 - abs(total - cells) / total * 100
    return BrailleStats(
        total_characters=total,
        braille_cells=cells,
        contractions=contractions,
        compression_ratio=cells / total,
        accuracy=round(min(100.0, max(0.0, accuracy)), 1),
    )


class BrailleTransliterator:
    """
    Source text -> braille cells.

    The built-in keyword table always wins over user contractions of the
    same length; user tables only add words.
    """

    def __init__(self, custom_contractions: Optional[Mapping[str, str]] = None):
        self.custom_contractions = validate_contractions(custom_contractions)
        words = set(PROGRAMMING_CONTRACTIONS) | set(self.custom_contractions)
        self._lengths = sorted({len(w) for w in words}, reverse=True)

    def match_contraction(self, line: str, pos: int) -> Optional[Tuple[str, str]]:
        """Longest whole-word contraction starting at pos"""
        if pos > 0 and IDENTIFIER_CHAR.match(line[pos - 1]):
            return None
        if not IDENTIFIER_CHAR.match(line[pos]):
            return None
        for length in self._lengths:
            end = pos + length
            if end > len(line) or (end < len(line) and IDENTIFIER_CHAR.match(line[end])):
                continue
            word = line[pos:end]
            key = word.lower()
            glyphs = PROGRAMMING_CONTRACTIONS.get(key) or self.custom_contractions.get(key)
            if glyphs:
                return word, glyphs
        return None

    def render_line(self, line: str, number: int, settings: CoreSettings) -> Tuple[List[BrailleGlyph], int]:
        glyphs: List[BrailleGlyph] = []
        applied = 0
        pos = 0

        if settings.show_line_numbers:
            glyphs.append(line_number_glyph(number))

        if settings.preserve_formatting:
            pos, depth = indent_levels(line)
            if depth:
                glyphs.append(make_glyph(line[:pos], INDENT_GLYPH * depth, f"Indent level {depth}"))

        while pos < len(line):
            if settings.contractions_active:
                hit = self.match_contraction(line, pos)
                if hit:
                    word, cells = hit
                    glyphs.append(make_glyph(word, cells, f"Contraction for {word}"))
                    applied += 1
                    pos += len(word)
                    continue

            if settings.computer_braille:
                operator = next((op for op in OPERATORS_BY_LENGTH if line.startswith(op, pos)), None)
                if operator:
                    glyphs.append(make_glyph(operator, OPERATOR_GLYPHS[operator], f"Operator {operator}"))
                    pos += len(operator)
                    continue

            digits = DIGIT_RUN_RE.match(line, pos)
            if digits:
                run = digits.group(0)
                glyphs.append(make_glyph(run, NUMBER_INDICATOR + digit_glyphs(run), f"Number {run}"))
                pos += len(run)
                continue

            glyphs.append(glyph_for_character(line[pos]))
            pos += 1

        return glyphs, applied

    def render(self, text: Optional[str], settings: Optional[CoreSettings] = None) -> Tuple[List[List[BrailleGlyph]], int]:
        """Per-line glyph tokens and the number of contractions applied"""
        settings = settings or CoreSettings()
        if not text:
            return [], 0
        lines = []
        applied = 0
        for number, line in enumerate(text.split("\n"), 1):
            glyphs, count = self.render_line(line.rstrip("\r"), number, settings)
            lines.append(glyphs)
            applied += count
        return lines, applied

    def transliterate(self, text: Optional[str], settings: Optional[CoreSettings] = None) -> Tuple[str, BrailleStats]:
        lines, applied = self.render(text, settings)
        if not lines:
            return "", EMPTY_STATS
        braille_text = "\n".join("".join(g.glyphs for g in line) for line in lines)
        stats = compute_stats(text, braille_text, applied)
        logger.debug(
            f"Transliterated {stats.total_characters} chars into {stats.braille_cells} cells "
            f"({stats.contractions} contractions)"
        )
        return braille_text, stats


def transliterate(
    text: Optional[str],
    settings: Optional[CoreSettings] = None,
    custom_contractions: Optional[Mapping[str, str]] = None,
) -> Tuple[str, BrailleStats]:
    """Convenience wrapper around BrailleTransliterator"""
    return BrailleTransliterator(custom_contractions).transliterate(text, settings)


def wrap_braille(braille_text: str, cells_per_line: int = 40) -> str:
    """Break each output line into rows of at most cells_per_line cells"""
    if cells_per_line <= 0:
        return braille_text
    rows = []
    for line in braille_text.split("\n"):
        if not line:
            rows.append("")
            continue
        rows.extend(line[i:i + cells_per_line] for i in range(0, len(line), cells_per_line))
    return "\n".join(rows)


def virtual_display(braille_text: str, cells_per_line: int = 40) -> Tuple[BrailleGlyph, ...]:
    """
    Cells a refreshable display of DISPLAY_ROWS rows would show, each with its
    raised dots decoded from the code point.
    """
    cells = [c for c in braille_text if c != "\n"][:max(0, cells_per_line) * DISPLAY_ROWS]
    display = []
    for cell in cells:
        dots = cell_dots(cell)
        description = f"Dots {'-'.join(str(d) for d in sorted(dots))}" if dots else "Blank cell"
        display.append(make_glyph(cell, cell, description))
    return tuple(display)
