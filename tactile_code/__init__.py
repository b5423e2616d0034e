"""
Tactile Code - accessible code navigation core

Scan source into structural elements, navigate and search them, map them to
audio cues and render the code as braille.

⠞⠁⠉⠞⠊⠇⠑_⠉⠕⠙⠑
"""

__version__ = "0.1.0"

from .audio import CueMapper, PlaybackRequest
from .braille import BrailleStats, BrailleTransliterator, transliterate
from .models import Element, NavigationHistoryEntry, SearchResult, Span
from .navigator import NavigationIndex, build_index, describe_element, interpret_command, search_elements
from .scanner import Diagnostic, StructuralScanner, check_brackets, classify_line, scan
from .session import EditorSession
from .settings import AudioSettings, CoreSettings
from .taxonomy import ActionKind, ElementKind, ToneDescriptor

__all__ = [
    "ActionKind",
    "AudioSettings",
    "BrailleStats",
    "BrailleTransliterator",
    "CoreSettings",
    "CueMapper",
    "Diagnostic",
    "EditorSession",
    "Element",
    "ElementKind",
    "NavigationHistoryEntry",
    "NavigationIndex",
    "PlaybackRequest",
    "SearchResult",
    "Span",
    "StructuralScanner",
    "ToneDescriptor",
    "build_index",
    "check_brackets",
    "classify_line",
    "describe_element",
    "interpret_command",
    "scan",
    "search_elements",
    "transliterate",
]
