"""
Braille Tables

Character, operator and contraction tables for the transliteration engine.
Glyphs are Unicode braille cells (U+2800-U+28FF); dot patterns are decoded
from the code point rather than stored.

⠞⠁⠃⠇⠑⠎
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Tuple

# Base braille codepoint
BRAILLE_BASE = 0x2800
BRAILLE_LAST = 0x28FF

CAPITAL_INDICATOR = "⠠"
NUMBER_INDICATOR = "⠼"
DECIMAL_POINT = "⠨"
LINE_NUMBER_SEPARATOR = "⠒"
INDENT_GLYPH = "⠀"
REPLACEMENT_GLYPH = "⠿"

IDENTIFIER_CHAR = re.compile(r"[A-Za-z0-9_]")
IDENTIFIER_WORD = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# Lowercase source character -> glyph sequence
CHARACTER_GLYPHS: Mapping[str, str] = MappingProxyType({
    # Letters
    'a': '⠁', 'b': '⠃', 'c': '⠉', 'd': '⠙', 'e': '⠑', 'f': '⠋',
    'g': '⠛', 'h': '⠓', 'i': '⠊', 'j': '⠚', 'k': '⠅', 'l': '⠇',
    'm': '⠍', 'n': '⠝', 'o': '⠕', 'p': '⠏', 'q': '⠟', 'r': '⠗',
    's': '⠎', 't': '⠞', 'u': '⠥', 'v': '⠧', 'w': '⠺', 'x': '⠭',
    'y': '⠽', 'z': '⠵',

    # Digits share the a-j cells; the number indicator disambiguates
    '1': '⠁', '2': '⠃', '3': '⠉', '4': '⠙', '5': '⠑',
    '6': '⠋', '7': '⠛', '8': '⠓', '9': '⠊', '0': '⠚',

    # Brackets
    '(': '⠷', ')': '⠾',
    '[': '⠨⠷', ']': '⠨⠾',
    '{': '⠸⠷', '}': '⠸⠾',

    # Operators
    '=': '⠨⠅', '+': '⠬', '-': '⠤', '*': '⠔', '/': '⠌',
    '\\': '⠳', '<': '⠈⠣', '>': '⠈⠜', '&': '⠯', '|': '⠳',
    '^': '⠘', '~': '⠠⠤', '!': '⠖',

    # Punctuation
    '@': '⠈⠁', '#': '⠼', '$': '⠫', '%': '⠩',
    '"': '⠦', "'": '⠄', ':': '⠒', ';': '⠆', ',': '⠂',
    '.': '⠲', '?': '⠦',

    # Whitespace
    ' ': ' ',
    '\t': '⠀⠀',
})

CHARACTER_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    '(': 'Left parenthesis', ')': 'Right parenthesis',
    '[': 'Left bracket', ']': 'Right bracket',
    '{': 'Left brace', '}': 'Right brace',
    '=': 'Equals sign', '+': 'Plus sign', '-': 'Minus sign',
    '*': 'Asterisk', '/': 'Forward slash', '\\': 'Backslash',
    '<': 'Less than', '>': 'Greater than', '&': 'Ampersand',
    '|': 'Vertical bar', '^': 'Caret', '~': 'Tilde',
    '!': 'Exclamation mark', '@': 'At symbol', '#': 'Hash',
    '$': 'Dollar sign', '%': 'Percent sign', '"': 'Quotation mark',
    "'": 'Apostrophe', ':': 'Colon', ';': 'Semicolon', ',': 'Comma',
    '.': 'Period', '?': 'Question mark', ' ': 'Space',
    '\t': 'Tab (2 cells)',
})

# Computer-braille operators, only used when computer braille is enabled
OPERATOR_GLYPHS: Mapping[str, str] = MappingProxyType({
    '==': '⠨⠅⠨⠅',
    '!=': '⠌⠨⠅',
    '<=': '⠈⠣⠨⠅',
    '>=': '⠈⠜⠨⠅',
    '++': '⠬⠬',
    '--': '⠤⠤',
    '&&': '⠯⠯',
    '||': '⠳⠳',
    '::': '⠒⠒',
    '->': '⠤⠈⠜',
    '=>': '⠨⠅⠈⠜',
    '//': '⠌⠌',
    '/*': '⠌⠔',
    '*/': '⠔⠌',
})

# Longest operators first so the scan can stop at the first hit
OPERATORS_BY_LENGTH: Tuple[str, ...] = tuple(
    sorted(OPERATOR_GLYPHS, key=len, reverse=True)
)

# Grade 2 programming contractions (keyword -> glyph sequence)
PROGRAMMING_CONTRACTIONS: Mapping[str, str] = MappingProxyType({
    'function': '⠋⠝',
    'return': '⠗⠞',
    'class': '⠉⠇',
    'public': '⠏⠃',
    'private': '⠏⠧',
    'protected': '⠏⠞',
    'static': '⠎⠞',
    'const': '⠉⠎',
    'let': '⠇⠞',
    'var': '⠧⠗',
    'if': '⠊⠋',
    'else': '⠑⠇',
    'for': '⠋⠗',
    'while': '⠺⠓',
    'do': '⠙⠕',
    'switch': '⠎⠺',
    'case': '⠉⠁',
    'break': '⠃⠅',
    'continue': '⠉⠞',
    'try': '⠞⠗',
    'catch': '⠉⠓',
    'finally': '⠋⠇',
    'throw': '⠞⠓',
    'new': '⠝⠺',
    'delete': '⠙⠇',
    'this': '⠞⠓',
    'super': '⠎⠏',
    'extends': '⠑⠭',
    'implements': '⠊⠍',
    'interface': '⠊⠞',
    'enum': '⠑⠝',
    'import': '⠊⠍',
    'export': '⠑⠭',
    'from': '⠋⠍',
    'as': '⠁⠎',
    'default': '⠙⠋',
    'async': '⠁⠎',
    'await': '⠁⠺',
    'promise': '⠏⠍',
    'undefined': '⠥⠝',
    'null': '⠝⠇',
    'true': '⠞⠗',
    'false': '⠋⠇',
    'boolean': '⠃⠇',
    'string': '⠎⠞',
    'number': '⠝⠍',
    'object': '⠕⠃',
    'array': '⠁⠗',
    'length': '⠇⠛',
    'push': '⠏⠎',
    'pop': '⠏⠕',
    'shift': '⠎⠓',
    'unshift': '⠥⠎',
    'slice': '⠎⠇',
    'splice': '⠎⠏',
    'indexof': '⠊⠙',
    'foreach': '⠋⠑',
    'map': '⠍⠁',
    'filter': '⠋⠇',
    'reduce': '⠗⠙',
    'find': '⠋⠙',
    'console': '⠉⠕',
    'log': '⠇⠛',
    'error': '⠑⠗',
    'warn': '⠺⠗',
    'debug': '⠙⠃',
    'document': '⠙⠉',
    'window': '⠺⠙',
    'element': '⠑⠇',
    'addeventlistener': '⠁⠇',
    'removeeventlistener': '⠗⠇',
    'getelementbyid': '⠛⠊',
    'queryselector': '⠟⠎',
    'createelement': '⠉⠑',
    'appendchild': '⠁⠉',
    'removechild': '⠗⠉',
    'innerhtml': '⠊⠓',
    'textcontent': '⠞⠉',
    'setattribute': '⠎⠁',
    'getattribute': '⠛⠁',
    'classlist': '⠉⠇',
    'style': '⠎⠞',
    'settimeout': '⠎⠞',
    'setinterval': '⠎⠊',
    'cleartimeout': '⠉⠞',
    'clearinterval': '⠉⠊',
})


@dataclass(frozen=True)
class BrailleGlyph:
    """A source fragment and the braille cells that stand for it"""
    source_text: str
    glyphs: str
    dot_pattern: Tuple[FrozenSet[int], ...]
    description: str = ""

    @property
    def cell_count(self) -> int:
        return len(self.glyphs)

    def to_dict(self) -> Dict:
        return {
            "source_text": self.source_text,
            "glyphs": self.glyphs,
            "dot_pattern": [sorted(cell) for cell in self.dot_pattern],
            "description": self.description,
        }


def is_braille_cell(char: str) -> bool:
    return len(char) == 1 and BRAILLE_BASE <= ord(char) <= BRAILLE_LAST


def cell_dots(char: str) -> FrozenSet[int]:
    """Active dot numbers (1-8) of a braille cell; empty for anything else"""
    if not is_braille_cell(char):
        return frozenset()
    dots_value = ord(char) - BRAILLE_BASE
    return frozenset(i + 1 for i in range(8) if dots_value & (1 << i))


def make_glyph(source_text: str, glyphs: str, description: str = "") -> BrailleGlyph:
    """Build a BrailleGlyph, decoding each cell's dot pattern"""
    return BrailleGlyph(
        source_text=source_text,
        glyphs=glyphs,
        dot_pattern=tuple(cell_dots(c) for c in glyphs),
        description=description,
    )


def describe_character(char: str) -> str:
    """Human description of a source character"""
    if char in CHARACTER_DESCRIPTIONS:
        return CHARACTER_DESCRIPTIONS[char]
    if char.isdigit():
        return f"Number {char}"
    if char.isalpha():
        return f"Letter {char.upper()}"
    return "Unknown character"


def glyph_for_character(char: str) -> BrailleGlyph:
    """Single-character lookup with capital indicator and replacement fallback"""
    glyphs = CHARACTER_GLYPHS.get(char.lower())
    if glyphs is None:
        return make_glyph(char, REPLACEMENT_GLYPH, "Unmapped character")
    if char.isupper():
        glyphs = CAPITAL_INDICATOR + glyphs
    return make_glyph(char, glyphs, describe_character(char))

