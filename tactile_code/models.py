"""
Tactile Code Data Model

Elements, history entries and search results. Everything here is frozen:
a new scan or query builds new objects instead of mutating old ones.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .taxonomy import ActionKind, ElementKind, GLOBAL_SCOPE, GROUP_SCOPE


@dataclass(frozen=True)
class Span:
    """1-based source range; end bounds may equal start bounds"""
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def to_dict(self) -> Dict:
        return {
            "start_line": self.start_line,
            "start_column": self.start_column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }


@dataclass(frozen=True)
class Element:
    """A syntactic unit detected by the scanner"""
    id: str
    kind: ElementKind
    name: str
    span: Span
    scope: str = GLOBAL_SCOPE
    params: Tuple[str, ...] = ()
    is_async: bool = False
    is_static: bool = False
    complexity: int = 1
    description: str = ""
    parent_id: Optional[str] = None
    # None means "not grouped", not "leaf"
    children: Optional[Tuple["Element", ...]] = field(default=None, compare=False)

    @property
    def line(self) -> int:
        return self.span.start_line

    @property
    def is_group(self) -> bool:
        return self.scope == GROUP_SCOPE

    def to_dict(self) -> Dict:
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "name": self.name,
            "span": self.span.to_dict(),
            "scope": self.scope,
            "params": list(self.params),
            "is_async": self.is_async,
            "is_static": self.is_static,
            "complexity": self.complexity,
            "description": self.description,
            "parent_id": self.parent_id,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass(frozen=True)
class NavigationHistoryEntry:
    element: Element
    timestamp: float
    action: ActionKind = ActionKind.NAVIGATE

    def to_dict(self) -> Dict:
        return {
            "element_id": self.element.id,
            "timestamp": self.timestamp,
            "action": self.action.value,
        }


@dataclass(frozen=True)
class SearchResult:
    element: Element
    score: int
    match_count: int
    context: str

    def to_dict(self) -> Dict:
        return {
            "element": self.element.to_dict(),
            "score": self.score,
            "match_count": self.match_count,
            "context": self.context,
        }
