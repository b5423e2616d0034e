"""
Structural Scanner for Tactile Code

Turns raw source text into an ordered sequence of typed elements:
- Comments, functions, classes, variables
- Imports and exports
- Loops and conditionals

One left-to-right pass over lines. Each line is offered to an ordered list of
independent classifiers; every classifier that matches emits its own element,
so an exported class yields both a class and an export element.

The patterns are language-agnostic regular expressions (JavaScript/TypeScript
and Python flavoured), not a grammar. Lines nothing recognises are skipped.

⠎⠉⠁⠝⠝⠑⠗
"""

import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from loguru import logger

from .config import settings
from .models import Element, Span
from .taxonomy import ElementKind, GLOBAL_SCOPE

IDENT = r"[A-Za-z_$][\w$]*"
MODIFIERS = (
    r"(?P<mods>(?:(?:export|default|public|private|protected|static|async|"
    r"override|abstract|pub|unsafe|inline)\s+)*)"
)

FUNCTION_KEYWORD_RE = re.compile(
    rf"^{MODIFIERS}(?:function\s*\*?|def|fn|func)\s+(?P<name>{IDENT})\s*"
    rf"(?:<[^>]*>)?\s*\((?P<params>[^)]*)"
)
FUNCTION_BINDING_RE = re.compile(
    rf"^{MODIFIERS}(?:const|let|var)\s+(?P<name>{IDENT})\s*(?::[^=]+)?=\s*"
    rf"(?P<async>async\s+)?(?:function\s*\*?\s*(?:{IDENT})?\s*\((?P<fparams>[^)]*)\)"
    rf"|\((?P<params>[^)]*)\)\s*(?::\s*[^=]+)?=>"
    rf"|(?P<single>{IDENT})\s*=>)"
)
FUNCTION_PROPERTY_RE = re.compile(
    rf"^(?P<name>{IDENT})\s*:\s*(?P<async>async\s+)?\((?P<params>[^)]*)\)\s*=>"
)
FUNCTION_METHOD_RE = re.compile(
    rf"^{MODIFIERS}(?P<name>{IDENT})\s*(?:<[^>]*>)?\s*\((?P<params>[^)]*)\)"
    rf"\s*(?::\s*[^{{]+)?\{{"
)
CLASS_RE = re.compile(
    rf"^(?:(?:export|default|abstract|public|private|final|sealed|pub)\s+)*"
    rf"class\s+(?P<name>{IDENT})(?:\s*\((?P<bases>[^)]*)\))?"
    rf"(?:\s+extends\s+(?P<extends>[\w$.]+))?"
)
VARIABLE_RE = re.compile(
    rf"^(?:export\s+)?(?P<decl>const|let|var)\s+(?P<name>{IDENT})"
    rf"(?:\s*(?::[^=]+)?=\s*(?P<value>.+))?"
)
IMPORT_FROM_RE = re.compile(r"""^import\s+(?P<items>.+?)\s+from\s+['"](?P<module>[^'"]+)['"]""")
IMPORT_BARE_RE = re.compile(r"""^import\s+['"](?P<module>[^'"]+)['"]""")
IMPORT_PY_FROM_RE = re.compile(r"^from\s+(?P<module>[\w.]+)\s+import\s+(?P<items>.+)")
IMPORT_PY_RE = re.compile(
    r"^import\s+(?P<module>[\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)\s*;?$"
)
EXPORT_RE = re.compile(r"^export\s+(?P<default>default\s+)?(?P<item>.+)")
LOOP_RE = re.compile(r"^(?P<keyword>for|foreach|while|do)(?=[\s({:]|$)")
CONDITIONAL_RE = re.compile(
    r"^\}?\s*(?P<keyword>else\s+if|elif|else|if|switch|case)(?=[\s({:]|$)"
)

COMMENT_PREFIXES = ("//", "/*", "*", "#")
COMMENT_MARKERS_RE = re.compile(r"^(?://+|/\*+|\*+|#+!?)\s*|\s*\*+/\s*$")

CONTROL_KEYWORDS = frozenset({
    "if", "elif", "else", "for", "foreach", "while", "do", "switch", "case",
    "catch", "try", "return", "with", "new", "typeof", "await", "yield",
    "throw", "delete", "in", "of", "sizeof", "function",
})

# Whole tokens that indicate a branch; symbols are matched as tokens too
BRANCH_WORDS = frozenset({"if", "else", "while", "for", "switch", "case", "catch"})
BRANCH_SYMBOLS = frozenset({"&&", "||", "?"})
TOKEN_RE = re.compile(rf"{IDENT}|\?\?=?|\?\.|&&|\|\||\S")

STRING_LITERAL_RE = re.compile(r'"(?:\\.|[^"\\])*"|\'(?:\\.|[^\'\\])*\'|`(?:\\.|[^`\\])*`')
TRAILING_COMMENT_RE = re.compile(r"//.*$|\s#.*$")
PARAM_NAME_RE = re.compile(IDENT)


def calculate_complexity(line: str) -> int:
    """1 plus one per branch-indicating token on the line"""
    complexity = 1
    for token in TOKEN_RE.findall(line):
        if token.lower() in BRANCH_WORDS or token in BRANCH_SYMBOLS:
            complexity += 1
    return complexity


def parse_params(raw: Optional[str]) -> Tuple[str, ...]:
    """Parameter names without annotations, defaults or spread markers"""
    if not raw:
        return ()
    names = []
    for part in raw.split(","):
        head = re.split(r"[:=]", part.strip(), maxsplit=1)[0]
        match = PARAM_NAME_RE.search(head.lstrip("*.& "))
        if match:
            names.append(match.group(0))
    return tuple(names)


def truncate(text: str, limit: int) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _blank(match) -> str:
    return " " * len(match.group(0))


def mask_literals(code: str) -> str:
    """Blank out string literals and trailing comments, keeping columns intact"""
    return TRAILING_COMMENT_RE.sub(_blank, STRING_LITERAL_RE.sub(_blank, code))


def brace_delta(code: str) -> int:
    cleaned = mask_literals(code)
    return cleaned.count("{") - cleaned.count("}")


@dataclass(frozen=True)
class LineContext:
    """What a classifier sees for one source line"""
    number: int
    raw: str
    stripped: str
    indent: int
    scope: str
    parent_id: Optional[str]
    name_max_length: int
    summary_max_length: int

    def span_for(self, column: int = 1) -> Span:
        return Span(self.number, column, self.number, len(self.raw))

    def column_of(self, name: str) -> int:
        index = self.raw.find(name)
        return index + 1 if index >= 0 else 1

    def element(self, kind: ElementKind, name: str, column: int = 1, **fields) -> Element:
        fields.setdefault("scope", self.scope)
        fields.setdefault("parent_id", self.parent_id if fields["scope"] == self.scope else None)
        return Element(id="", kind=kind, name=name, span=self.span_for(column), **fields)


Classifier = Callable[[LineContext], Optional[Element]]


def classify_comment(ctx: LineContext) -> Optional[Element]:
    if not ctx.stripped.startswith(COMMENT_PREFIXES):
        return None
    text = COMMENT_MARKERS_RE.sub("", ctx.stripped) or ctx.stripped
    return ctx.element(
        ElementKind.COMMENT,
        truncate(text, ctx.name_max_length),
        column=ctx.indent + 1,
        description="Code comment",
    )


def classify_function(ctx: LineContext) -> Optional[Element]:
    line = ctx.stripped
    match = FUNCTION_KEYWORD_RE.match(line)
    params_raw = match.group("params") if match else None
    is_async = False
    if match is None:
        match = FUNCTION_BINDING_RE.match(line)
        if match:
            params_raw = match.group("fparams") or match.group("params") or match.group("single")
            is_async = bool(match.group("async"))
    if match is None:
        match = FUNCTION_PROPERTY_RE.match(line)
        if match:
            params_raw = match.group("params")
            is_async = bool(match.group("async"))
    if match is None:
        match = FUNCTION_METHOD_RE.match(line)
        if match:
            params_raw = match.group("params")
    if match is None:
        return None

    name = match.group("name")
    if name in CONTROL_KEYWORDS:
        return None
    modifiers = (match.groupdict().get("mods") or "").split()
    params = parse_params(params_raw)
    plural = "s" if len(params) != 1 else ""
    return ctx.element(
        ElementKind.FUNCTION,
        name,
        column=ctx.column_of(name),
        params=params,
        is_async=is_async or "async" in modifiers,
        is_static="static" in modifiers,
        complexity=calculate_complexity(line),
        description=f"Function with {len(params)} parameter{plural}",
    )


def classify_class(ctx: LineContext) -> Optional[Element]:
    match = CLASS_RE.match(ctx.stripped)
    if match is None:
        return None
    name = match.group("name")
    base = match.group("extends") or (match.group("bases") or "").split(",")[0].strip()
    return ctx.element(
        ElementKind.CLASS,
        name,
        column=ctx.column_of(name),
        complexity=calculate_complexity(ctx.stripped),
        description=f"Class extending {base}" if base else "Class",
    )


def classify_variable(ctx: LineContext) -> Optional[Element]:
    match = VARIABLE_RE.match(ctx.stripped)
    if match is None:
        return None
    name = match.group("name")
    description = f"{match.group('decl')} variable"
    value = (match.group("value") or "").strip()
    if value:
        description += f" initialized with {truncate(value, 20)}"
    return ctx.element(
        ElementKind.VARIABLE,
        name,
        column=ctx.column_of(name),
        description=description,
    )


def classify_import(ctx: LineContext) -> Optional[Element]:
    line = ctx.stripped
    for pattern in (IMPORT_FROM_RE, IMPORT_PY_FROM_RE, IMPORT_BARE_RE, IMPORT_PY_RE):
        match = pattern.match(line)
        if match:
            break
    else:
        return None
    module = match.group("module")
    items = match.groupdict().get("items") or module
    return ctx.element(
        ElementKind.IMPORT,
        truncate(items, ctx.summary_max_length),
        scope=GLOBAL_SCOPE,
        parent_id=None,
        description=f"Import from {module}",
    )


def classify_export(ctx: LineContext) -> Optional[Element]:
    match = EXPORT_RE.match(ctx.stripped)
    if match is None:
        return None
    return ctx.element(
        ElementKind.EXPORT,
        truncate(match.group("item"), ctx.summary_max_length),
        description="Default export" if match.group("default") else "Export",
    )


def classify_loop(ctx: LineContext) -> Optional[Element]:
    match = LOOP_RE.match(ctx.stripped)
    if match is None:
        return None
    keyword = match.group("keyword")
    return ctx.element(
        ElementKind.LOOP,
        f"{keyword} loop",
        complexity=calculate_complexity(ctx.stripped),
        description=f"{keyword.capitalize()} loop statement",
    )


def classify_conditional(ctx: LineContext) -> Optional[Element]:
    match = CONDITIONAL_RE.match(ctx.stripped)
    if match is None:
        return None
    keyword = " ".join(match.group("keyword").split())
    return ctx.element(
        ElementKind.CONDITIONAL,
        f"{keyword} statement",
        complexity=calculate_complexity(ctx.stripped),
        description=f"{keyword.capitalize()} conditional",
    )


# Priority order; comment lines stop after the first classifier
LINE_CLASSIFIERS: Tuple[Classifier, ...] = (
    classify_comment,
    classify_function,
    classify_class,
    classify_variable,
    classify_import,
    classify_export,
    classify_loop,
    classify_conditional,
)

SCOPE_OPENERS = (ElementKind.FUNCTION, ElementKind.CLASS)
IDENTIFIER_KINDS = (ElementKind.FUNCTION, ElementKind.CLASS, ElementKind.VARIABLE)


@dataclass
class _Frame:
    name: str
    element_id: str
    style: str  # "brace" or "indent"
    depth: int
    indent: int


class ScopeTracker:
    """
    Tracks the enclosing function/class while scanning.

    "stack" keeps an explicit stack: brace blocks close when the brace depth
    returns to where they opened, indentation blocks close on dedent.
    "last-seen" keeps one slot holding the newest function/class and never pops.
    """

    def __init__(self, mode: str = "stack"):
        self.mode = mode
        self.frames: List[_Frame] = []
        self.depth = 0
        self.pending: Optional[_Frame] = None
        self.last_seen: Optional[Tuple[str, str]] = None

    @property
    def current(self) -> Tuple[str, Optional[str]]:
        if self.mode == "last-seen":
            return self.last_seen or (GLOBAL_SCOPE, None)
        if self.frames:
            return self.frames[-1].name, self.frames[-1].element_id
        return GLOBAL_SCOPE, None

    def enter_line(self, stripped: str, indent: int):
        """Close indentation blocks and open a pending Allman-style brace block"""
        while self.frames and self.frames[-1].style == "indent" and indent <= self.frames[-1].indent:
            self.frames.pop()
        if self.pending is not None:
            if stripped.startswith("{"):
                self.pending.depth = self.depth
                self.frames.append(self.pending)
            self.pending = None

    def saw_opener(self, element: Element):
        if self.mode == "last-seen":
            self.last_seen = (element.name, element.id)

    def leave_line(self, stripped: str, indent: int, opener: Optional[Element]):
        start_depth = self.depth
        delta = brace_delta(stripped)
        self.depth = max(0, self.depth + delta)
        if opener is not None and self.mode == "stack":
            frame = _Frame(opener.name, opener.id, "brace", start_depth, indent)
            if delta > 0:
                self.frames.append(frame)
            elif mask_literals(stripped).rstrip().endswith(":"):
                frame.style = "indent"
                self.frames.append(frame)
            else:
                self.pending = frame
        while self.frames and self.frames[-1].style == "brace" and self.depth <= self.frames[-1].depth:
            self.frames.pop()


class StructuralScanner:
    """
    Converts source text into elements. Pure: identical text always yields
    an identical element sequence, and no input makes it raise.
    """

    def __init__(
        self,
        name_max_length: Optional[int] = None,
        summary_max_length: Optional[int] = None,
        scope_tracking: Optional[str] = None,
        classifiers: Tuple[Classifier, ...] = LINE_CLASSIFIERS,
    ):
        self.name_max_length = name_max_length or settings.name_max_length
        self.summary_max_length = summary_max_length or settings.summary_max_length
        self.scope_tracking = scope_tracking or settings.scope_tracking
        self.classifiers = classifiers

    def scan(self, source_text: Optional[str]) -> Tuple[Element, ...]:
        """Scan text into elements ordered by start line (stable)"""
        if not source_text:
            return ()

        elements: List[Element] = []
        tracker = ScopeTracker(self.scope_tracking)
        lines = source_text.split("\n")

        for number, raw in enumerate(lines, 1):
            raw = raw.rstrip("\r")
            stripped = raw.strip()
            if not stripped:
                continue
            indent = len(raw) - len(raw.lstrip())
            is_comment = stripped.startswith(COMMENT_PREFIXES)
            if not is_comment:
                tracker.enter_line(stripped, indent)

            opener = None
            for classifier in self.classifiers:
                scope, parent_id = tracker.current
                ctx = LineContext(
                    number=number,
                    raw=raw,
                    stripped=stripped,
                    indent=indent,
                    scope=scope,
                    parent_id=parent_id,
                    name_max_length=self.name_max_length,
                    summary_max_length=self.summary_max_length,
                )
                element = classifier(ctx)
                if element is None:
                    continue
                element = replace(element, id=f"{element.kind.value}-{len(elements)}")
                if element.kind in SCOPE_OPENERS:
                    opener = element
                    tracker.saw_opener(element)
                if element.kind in IDENTIFIER_KINDS:
                    # Scopes keep the full name; the element shows a bounded one
                    element = replace(element, name=truncate(element.name, self.name_max_length))
                elements.append(element)
                if element.kind == ElementKind.COMMENT:
                    break

            if not is_comment:
                tracker.leave_line(stripped, indent, opener)

        elements.sort(key=lambda e: e.span.start_line)
        logger.debug(f"Scanned {len(lines)} lines into {len(elements)} elements")
        return tuple(elements)

    def classify_line(self, line: str) -> Tuple[ElementKind, ...]:
        """Kinds a single line would produce, in classifier order"""
        return tuple(element.kind for element in self.scan(line.split("\n")[0]))


@dataclass(frozen=True)
class Diagnostic:
    line: int
    column: int
    message: str
    severity: str = "error"

    def to_dict(self):
        return {
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "severity": self.severity,
        }


CLOSING_BRACKETS = {")": "(", "]": "[", "}": "{"}
LOOSE_EQUALITY_RE = re.compile(r"(?<![=!<>])==(?!=)")


def check_brackets(source_text: Optional[str], language: str = "") -> Tuple[Diagnostic, ...]:
    """
    Match brackets across the whole document, ignoring strings and comments.
    JavaScript and TypeScript also get loose-equality warnings.
    """
    diagnostics = []
    open_brackets: List[Tuple[str, int, int]] = []
    strict_equality = language.lower() in ("javascript", "js", "typescript", "ts")

    for number, raw in enumerate((source_text or "").split("\n"), 1):
        if raw.strip().startswith(COMMENT_PREFIXES):
            continue
        code = mask_literals(raw.rstrip("\r"))
        for index, char in enumerate(code):
            if char in "([{":
                open_brackets.append((char, number, index + 1))
            elif char in CLOSING_BRACKETS:
                if open_brackets and open_brackets[-1][0] == CLOSING_BRACKETS[char]:
                    open_brackets.pop()
                elif open_brackets:
                    opener, line, _ = open_brackets.pop()
                    diagnostics.append(Diagnostic(
                        number, index + 1, f"Mismatched '{char}' for '{opener}' opened on line {line}"
                    ))
                else:
                    diagnostics.append(Diagnostic(number, index + 1, f"Unmatched '{char}'"))
        if strict_equality:
            for match in LOOSE_EQUALITY_RE.finditer(code):
                diagnostics.append(Diagnostic(
                    number, match.start() + 1, "Consider using strict equality (===)", "warning"
                ))

    for opener, line, column in open_brackets:
        diagnostics.append(Diagnostic(line, column, f"Unclosed '{opener}'"))
    diagnostics.sort(key=lambda d: (d.line, d.column))
    return tuple(diagnostics)


_default_scanner: Optional[StructuralScanner] = None


def get_scanner() -> StructuralScanner:
    """Get or create the shared scanner configured from settings"""
    global _default_scanner
    if _default_scanner is None:
        _default_scanner = StructuralScanner()
    return _default_scanner


def scan(source_text: Optional[str]) -> Tuple[Element, ...]:
    return get_scanner().scan(source_text)


def classify_line(line: str) -> Tuple[ElementKind, ...]:
    return get_scanner().classify_line(line)
