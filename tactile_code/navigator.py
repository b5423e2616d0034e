"""
Navigation and Search Index

Holds the working set of elements for one editing session:
- Visible sequence (kind filter, text filter, sort, optional grouping)
- Scored search with a bounded result cache
- Browser-style history with a movable cursor
- Breadcrumbs and "selection changed" notifications

One index per session; the UI thread is the only writer.

⠝⠁⠧⠊⠛⠁⠞⠑
"""

import re
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .config import settings as app_settings
from .models import Element, NavigationHistoryEntry, SearchResult, Span
from .settings import CoreSettings
from .taxonomy import (
    ActionKind,
    ElementKind,
    GLOBAL_SCOPE,
    GROUP_SCOPE,
    KIND_SEARCH_BOOST,
    SortKey,
    SortOrder,
    parse_kind,
)

SelectionListener = Callable[[Element, ActionKind], None]

NAME_EXACT_SCORE = 100
NAME_PARTIAL_SCORE = 50
DESCRIPTION_SCORE = 25
SCOPE_SCORE = 15
PARAM_SCORE = 10

_SORT_KEYS = {
    SortKey.NAME: lambda e: e.name.casefold(),
    SortKey.LINE: lambda e: e.span.start_line,
    SortKey.COMPLEXITY: lambda e: e.complexity,
    SortKey.TYPE: lambda e: e.kind.value,
}


# ---- Pure pipeline stages ----

def filter_by_kind(elements: Iterable[Element], kinds) -> Tuple[Element, ...]:
    if not kinds:
        return tuple(elements)
    return tuple(e for e in elements if e.kind in kinds)


def filter_by_query(elements: Iterable[Element], query: Optional[str]) -> Tuple[Element, ...]:
    """Case-insensitive substring match on name or description"""
    needle = (query or "").strip().lower()
    if not needle:
        return tuple(elements)
    return tuple(
        e for e in elements
        if needle in e.name.lower() or needle in e.description.lower()
    )


def sort_elements(elements: Iterable[Element], key: SortKey, order: SortOrder) -> Tuple[Element, ...]:
    """Stable sort; ties keep their input order in both directions"""
    return tuple(sorted(
        elements,
        key=_SORT_KEYS.get(key, _SORT_KEYS[SortKey.LINE]),
        reverse=order == SortOrder.DESC,
    ))


def group_by_kind(elements: Sequence[Element]) -> Tuple[Element, ...]:
    """One synthetic group element per kind, in order of first appearance"""
    members: Dict[ElementKind, List[Element]] = {}
    for element in elements:
        members.setdefault(element.kind, []).append(element)

    groups = []
    for kind, items in members.items():
        groups.append(Element(
            id=f"group-{kind.value}",
            kind=kind,
            name=f"{kind.plural_label} ({len(items)})",
            span=Span(0, 0, 0, 0),
            scope=GROUP_SCOPE,
            complexity=1,
            description=f"{len(items)} {kind.value} element{'s' if len(items) != 1 else ''}",
            children=tuple(items),
        ))
    return tuple(groups)


def build_index(elements: Iterable[Element], settings: CoreSettings, query: Optional[str] = None) -> Tuple[Element, ...]:
    """Kind filter -> text filter -> sort -> optional grouping"""
    visible = filter_by_kind(elements, settings.filter_kinds)
    visible = filter_by_query(visible, query)
    visible = sort_elements(visible, settings.sort_by, settings.sort_order)
    if settings.group_by_type:
        visible = group_by_kind(visible)
    return visible


def score_element(element: Element, query: str) -> Optional[SearchResult]:
    """Additive relevance score; None when nothing matched"""
    needle = query.strip().lower()
    if not needle:
        return None

    score = 0
    matches = 0
    context = ""

    name = element.name.lower()
    if name == needle:
        score += NAME_EXACT_SCORE
    elif needle in name:
        score += NAME_PARTIAL_SCORE
    if needle in name:
        matches += 1
        context = element.name

    if needle in element.description.lower():
        score += DESCRIPTION_SCORE
        matches += 1
        context = context or element.description

    if needle in element.scope.lower():
        score += SCOPE_SCORE
        matches += 1
        context = context or f"in {element.scope}"

    for param in element.params:
        if needle in param.lower():
            score += PARAM_SCORE
            matches += 1
            context = context or f"parameter {param}"

    if matches == 0:
        return None
    score += KIND_SEARCH_BOOST.get(element.kind, 0)
    return SearchResult(element=element, score=score, match_count=matches, context=context)


def search_elements(elements: Iterable[Element], query: Optional[str], limit: int = 20) -> Tuple[SearchResult, ...]:
    """Score every element, best first, ties in scan order, capped at limit"""
    if not query or not query.strip():
        return ()
    results = [r for r in (score_element(e, query) for e in elements) if r is not None and r.score > 0]
    results.sort(key=lambda r: -r.score)
    return tuple(results[:limit])


def describe_element(element: Element, settings: Optional[CoreSettings] = None) -> str:
    """Screen-reader text for an element, honouring the display toggles"""
    settings = settings or CoreSettings()
    if element.is_group:
        return element.name
    parts = [f"{element.kind.value} {element.name}"]
    if settings.show_line_numbers:
        parts.append(f"on line {element.line}")
    if settings.show_scope and element.scope != GLOBAL_SCOPE:
        parts.append(f"in {element.scope}")
    if element.params:
        parts.append(f"with parameters {', '.join(element.params)}")
    if settings.show_complexity:
        parts.append(f"complexity {element.complexity}")
    return " ".join(parts)


class SearchCache:
    """Bounded LRU of query -> results, cleared whenever the working set changes"""

    def __init__(self, max_size: int = 100):
        self.max_size = max_size
        self._entries: "OrderedDict[str, Tuple[SearchResult, ...]]" = OrderedDict()

    def get(self, query: str) -> Optional[Tuple[SearchResult, ...]]:
        results = self._entries.get(query)
        if results is not None:
            self._entries.move_to_end(query)
        return results

    def put(self, query: str, results: Tuple[SearchResult, ...]):
        self._entries[query] = results
        self._entries.move_to_end(query)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class NavigationIndex:
    """
    Session state over one scan's elements.

    Boundary moves and unknown jumps are no-ops that return None; nothing
    here raises on content.
    """

    def __init__(
        self,
        settings: Optional[CoreSettings] = None,
        history_limit: Optional[int] = None,
        cache_size: Optional[int] = None,
        result_limit: Optional[int] = None,
    ):
        self.settings = settings or CoreSettings()
        self.history_limit = max(1, history_limit or app_settings.history_limit)
        self.result_limit = result_limit or app_settings.search_result_limit
        self.cache = SearchCache(cache_size or app_settings.search_cache_size)

        self._elements: Tuple[Element, ...] = ()
        self._by_id: Dict[str, Element] = {}
        self._visible: Tuple[Element, ...] = ()
        self._query = ""

        self._history: List[NavigationHistoryEntry] = []
        self._history_index = -1
        self._selected: Optional[Element] = None
        self._breadcrumbs: Tuple[Element, ...] = ()
        self._listeners: List[SelectionListener] = []

    # ---- Working set ----

    @property
    def elements(self) -> Tuple[Element, ...]:
        return self._elements

    @property
    def visible(self) -> Tuple[Element, ...]:
        return self._visible

    @property
    def query(self) -> str:
        return self._query

    def load(self, elements: Sequence[Element]):
        """Swap in a new scan result"""
        elements = tuple(elements)
        by_id = {e.id: e for e in elements}
        visible = build_index(elements, self.settings, self._query)
        self._elements, self._by_id, self._visible = elements, by_id, visible
        self.cache.clear()
        logger.debug(f"Index loaded {len(elements)} elements, {len(visible)} visible")

    def apply_settings(self, settings: CoreSettings):
        self.settings = settings
        self._visible = build_index(self._elements, settings, self._query)

    def set_query(self, query: Optional[str]):
        self._query = (query or "").strip()
        self._visible = build_index(self._elements, self.settings, self._query)

    def search(self, query: Optional[str]) -> Tuple[SearchResult, ...]:
        key = (query or "").strip().lower()
        if not key:
            return ()
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Search cache hit: {key!r}")
            return cached
        results = search_elements(self._elements, key, self.result_limit)
        self.cache.put(key, results)
        return results

    # ---- Selection and history ----

    @property
    def selected(self) -> Optional[Element]:
        return self._selected

    @property
    def breadcrumbs(self) -> Tuple[Element, ...]:
        return self._breadcrumbs

    @property
    def history(self) -> Tuple[NavigationHistoryEntry, ...]:
        return tuple(self._history)

    @property
    def history_index(self) -> int:
        return self._history_index

    def add_listener(self, listener: SelectionListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: SelectionListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def navigate_to(self, element: Element, action: ActionKind = ActionKind.NAVIGATE) -> Element:
        """Select an element and record it, discarding any forward history"""
        del self._history[self._history_index + 1:]
        self._history.append(NavigationHistoryEntry(element, time.time(), action))
        if len(self._history) > self.history_limit:
            del self._history[:len(self._history) - self.history_limit]
        self._history_index = len(self._history) - 1
        self._select(element, action)
        return element

    def history_move(self, direction: str) -> Optional[Element]:
        """Move the cursor one step 'back' or 'forward'; None at either boundary"""
        direction = (direction or "").strip().lower()
        if direction in ("back", "backward"):
            target = self._history_index - 1
        elif direction == "forward":
            target = self._history_index + 1
        else:
            logger.warning(f"Unknown history direction {direction!r}")
            return None

        if target < 0 or target >= len(self._history):
            return None
        self._history_index = target
        entry = self._history[target]
        self._select(entry.element, entry.action)
        return entry.element

    def jump_to_line(self, line: int) -> Optional[Element]:
        for element in self._elements:
            if element.span.start_line == line:
                return self.navigate_to(element, ActionKind.JUMP)
        return None

    def jump_to_kind(self, kind) -> Optional[Element]:
        kind = parse_kind(kind)
        if kind is None:
            return None
        for element in self._elements:
            if element.kind == kind:
                return self.navigate_to(element, ActionKind.JUMP)
        return None

    def _navigable(self) -> Tuple[Element, ...]:
        """Visible elements with groups expanded into their members"""
        items: List[Element] = []
        for element in self._visible:
            if element.is_group:
                items.extend(element.children or ())
            else:
                items.append(element)
        return tuple(items)

    def _step(self, offset: int) -> Optional[Element]:
        items = self._navigable()
        if not items:
            return None
        if self._selected not in items:
            return self.navigate_to(items[0] if offset > 0 else items[-1])
        position = items.index(self._selected) + offset
        if position < 0 or position >= len(items):
            return None
        return self.navigate_to(items[position])

    def select_next(self) -> Optional[Element]:
        return self._step(1)

    def select_previous(self) -> Optional[Element]:
        return self._step(-1)

    def select_first(self) -> Optional[Element]:
        items = self._navigable()
        return self.navigate_to(items[0]) if items else None

    def select_last(self) -> Optional[Element]:
        items = self._navigable()
        return self.navigate_to(items[-1]) if items else None

    def resolve_scope(self, element: Element) -> Optional[Element]:
        """Enclosing function/class element, if it can be found"""
        if element.scope in (GLOBAL_SCOPE, GROUP_SCOPE):
            return None
        if element.parent_id and element.parent_id in self._by_id:
            return self._by_id[element.parent_id]
        for candidate in self._elements:
            if candidate.kind in (ElementKind.FUNCTION, ElementKind.CLASS) and candidate.name == element.scope:
                return candidate
        return None

    def _select(self, element: Element, action: ActionKind):
        parent = self.resolve_scope(element)
        self._selected = element
        self._breadcrumbs = (parent, element) if parent is not None else (element,)
        for listener in list(self._listeners):
            try:
                listener(element, action)
            except Exception:
                logger.exception(f"Selection listener failed for {element.id}")


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a spoken command"""
    action: str
    element: Optional[Element] = None
    results: Tuple[SearchResult, ...] = ()
    message: str = ""

    def to_dict(self) -> Dict:
        return {
            "action": self.action,
            "element": self.element.to_dict() if self.element else None,
            "results": [r.to_dict() for r in self.results],
            "message": self.message,
        }


NAVIGATE_COMMAND_RE = re.compile(r"^(?:navigate|go)\s+to\s+(?P<kind>function|class|variable)\s+(?P<name>.+)$")
SEARCH_COMMAND_RE = re.compile(r"^search\s+(?:for\s+)?(?P<query>.+)$")
LINE_COMMAND_RE = re.compile(r"^(?:jump|go)\s+to\s+line\s+(?P<line>\d+)$")
BACK_COMMANDS = ("go back", "back")
FORWARD_COMMANDS = ("go forward", "forward")


def interpret_command(navigator: NavigationIndex, transcript: str) -> CommandResult:
    """Map a voice transcript onto navigator operations"""
    command = " ".join((transcript or "").lower().split()).rstrip(".!?")

    match = NAVIGATE_COMMAND_RE.match(command)
    if match:
        kind = ElementKind(match.group("kind"))
        name = match.group("name")
        target = next(
            (e for e in navigator.elements if e.kind == kind and e.name.lower() == name),
            None,
        )
        if target is None:
            target = next(
                (r.element for r in navigator.search(name) if r.element.kind == kind),
                None,
            )
        if target is None:
            return CommandResult("navigate", message=f"No {kind.value} named {name}")
        navigator.navigate_to(target, ActionKind.SEARCH)
        return CommandResult("navigate", element=target, message=describe_element(target, navigator.settings))

    match = LINE_COMMAND_RE.match(command)
    if match:
        line = int(match.group("line"))
        element = navigator.jump_to_line(line)
        if element is None:
            return CommandResult("jump", message=f"Nothing on line {line}")
        return CommandResult("jump", element=element, message=describe_element(element, navigator.settings))

    match = SEARCH_COMMAND_RE.match(command)
    if match:
        results = navigator.search(match.group("query"))
        return CommandResult("search", results=results, message=f"Found {len(results)} results")

    if command in BACK_COMMANDS or command in FORWARD_COMMANDS:
        direction = "back" if command in BACK_COMMANDS else "forward"
        element = navigator.history_move(direction)
        if element is None:
            return CommandResult(direction, message=f"Cannot go {direction}")
        return CommandResult(direction, element=element, message=describe_element(element, navigator.settings))

    logger.debug(f"Unrecognized command: {transcript!r}")
    return CommandResult("unknown", message=f"Unrecognized command: {transcript}")
