"""
Editor Session

Glue between an editor host and the core components. One session per open
document: it owns a navigation index and a cue mapper, and turns editor
events into scans, diagnostics, cues and braille.

⠎⠑⠎⠎⠊⠕⠝
"""

from collections import deque
from typing import Deque, Dict, Mapping, Optional, Tuple

from loguru import logger

from .audio import CueMapper
from .braille import BrailleStats, BrailleTransliterator
from .models import Element
from .navigator import NavigationIndex
from .scanner import Diagnostic, StructuralScanner, check_brackets
from .settings import AudioSettings, CoreSettings
from .taxonomy import CUE_OPERATOR, CUE_STRING, ActionKind

BRAILLE_HISTORY_LIMIT = 10
CURSOR_CUE_DURATION = 0.1
SELECTION_CUE_DURATION = 0.2
DIAGNOSTIC_CUE_DURATION = 0.5


def navigation_announcement(element: Element) -> str:
    if element.is_group:
        return f"Navigated to {element.name}"
    return f"Navigated to {element.kind.value} {element.name} on line {element.line}"


class EditorSession:
    """Single-document state driven by editor events"""

    def __init__(
        self,
        settings: Optional[CoreSettings] = None,
        audio_settings: Optional[AudioSettings] = None,
        cue_mapper: Optional[CueMapper] = None,
        scanner: Optional[StructuralScanner] = None,
        language: str = "",
        custom_contractions: Optional[Mapping[str, str]] = None,
    ):
        self.settings = settings or CoreSettings()
        self.language = language
        self.scanner = scanner or StructuralScanner()
        self.navigator = NavigationIndex(self.settings)
        self.cues = cue_mapper or CueMapper(audio_settings=audio_settings)
        if audio_settings is not None:
            self.cues.audio_settings = audio_settings
        self.transliterator = BrailleTransliterator(custom_contractions)
        self.text = ""
        self.lines: Tuple[str, ...] = ()
        self.cursor_line = 0
        self.diagnostics: Tuple[Diagnostic, ...] = ()
        self.braille_history: Deque[Tuple[str, BrailleStats]] = deque(maxlen=BRAILLE_HISTORY_LIMIT)
        self.navigator.add_listener(self._on_navigate)

    @property
    def elements(self) -> Tuple[Element, ...]:
        return self.navigator.elements

    def update_text(self, text: str) -> Tuple[Element, ...]:
        """Rescan after an edit (the host debounces calls)"""
        self.text = text or ""
        self.lines = tuple(self.text.split("\n"))
        self.cursor_line = 0
        elements = self.scanner.scan(self.text)
        self.navigator.load(elements)
        self.diagnostics = check_brackets(self.text, self.language)
        if self.diagnostics:
            self.cues.play_kind(
                CUE_OPERATOR,
                context=f"{len(self.diagnostics)} problems found",
                duration=DIAGNOSTIC_CUE_DURATION,
            )
        logger.debug(f"Session text updated: {len(elements)} elements, {len(self.diagnostics)} diagnostics")
        return elements

    def apply_settings(self, settings: CoreSettings):
        self.settings = settings
        self.navigator.apply_settings(settings)

    def on_cursor_moved(self, line: int):
        """Cue the kind of the line the cursor landed on (1-based)"""
        if line == self.cursor_line:
            return None
        self.cursor_line = line
        if line < 1 or line > len(self.lines):
            return None
        kinds = self.scanner.classify_line(self.lines[line - 1])
        if not kinds:
            return None
        return self.cues.play_kind(kinds[0], context=f"Line {line}", duration=CURSOR_CUE_DURATION)

    def on_selection_changed(self, selected_text: str):
        if not selected_text:
            return None
        return self.cues.play_kind(
            CUE_STRING,
            context=f"Selected {len(selected_text)} characters",
            duration=SELECTION_CUE_DURATION,
        )

    def _on_navigate(self, element: Element, action: ActionKind):
        kind = "keyword" if element.is_group else element.kind
        self.cues.play_kind(kind, context=navigation_announcement(element))

    def braille(self, text: Optional[str] = None) -> Tuple[str, BrailleStats]:
        """Transliterate the given text (or the whole document) and remember it"""
        result = self.transliterator.transliterate(self.text if text is None else text, self.settings)
        self.braille_history.append(result)
        return result

    def state(self) -> Dict:
        """Snapshot for a host UI"""
        selected = self.navigator.selected
        return {
            "elements": len(self.navigator.elements),
            "visible": [e.to_dict() for e in self.navigator.visible],
            "selected": selected.to_dict() if selected else None,
            "breadcrumbs": [e.name for e in self.navigator.breadcrumbs],
            "history_index": self.navigator.history_index,
            "history_length": len(self.navigator.history),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }

    def close(self):
        self.cues.close()
