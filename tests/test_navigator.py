"""Tests for the navigation and search index."""

import pytest
from conftest import element_named

from tactile_code.models import Element, Span
from tactile_code.navigator import (
    NavigationIndex,
    SearchCache,
    build_index,
    describe_element,
    interpret_command,
    score_element,
    search_elements,
)
from tactile_code.scanner import scan
from tactile_code.settings import CoreSettings
from tactile_code.taxonomy import ActionKind, ElementKind, SortKey, SortOrder


def make_element(index: int, name: str, kind=ElementKind.FUNCTION, complexity: int = 1) -> Element:
    return Element(
        id=f"{kind.value}-{index}",
        kind=kind,
        name=name,
        span=Span(index + 1, 1, index + 1, 10),
        complexity=complexity,
    )


class TestIndexPipeline:
    """Tests for filtering, sorting and grouping."""

    def test_default_is_scan_order(self, js_elements) -> None:
        assert build_index(js_elements, CoreSettings()) == js_elements

    def test_kind_filter(self, js_elements) -> None:
        settings = CoreSettings.from_mapping({"filterKinds": ["function"]})
        visible = build_index(js_elements, settings)
        assert [e.name for e in visible] == ["constructor", "parse", "add", "multiply"]

    def test_query_filter_matches_description(self, js_elements) -> None:
        visible = build_index(js_elements, CoreSettings(), "CONDITIONAL")
        assert [e.name for e in visible] == ["if statement"]

    def test_sort_by_name(self, js_elements) -> None:
        settings = CoreSettings(filter_kinds=frozenset({ElementKind.FUNCTION}), sort_by=SortKey.NAME)
        assert [e.name for e in build_index(js_elements, settings)] == ["add", "constructor", "multiply", "parse"]

    def test_visible_is_a_subsequence_after_filtering(self, js_elements) -> None:
        settings = CoreSettings(filter_kinds=frozenset({ElementKind.FUNCTION, ElementKind.LOOP}))
        visible = build_index(js_elements, settings)
        source = iter(js_elements)
        assert all(element in source for element in visible)

    @pytest.mark.parametrize("key", list(SortKey))
    @pytest.mark.parametrize("order", list(SortOrder))
    def test_sort_order_and_stable_ties(self, js_elements, key: SortKey, order: SortOrder) -> None:
        key_of = {
            SortKey.NAME: lambda e: e.name.casefold(),
            SortKey.LINE: lambda e: e.span.start_line,
            SortKey.COMPLEXITY: lambda e: e.complexity,
            SortKey.TYPE: lambda e: e.kind.value,
        }[key]
        visible = build_index(js_elements, CoreSettings(sort_by=key, sort_order=order))
        position = {e.id: i for i, e in enumerate(js_elements)}
        for first, second in zip(visible, visible[1:]):
            if key_of(first) == key_of(second):
                assert position[first.id] < position[second.id]
            elif order == SortOrder.ASC:
                assert key_of(first) < key_of(second)
            else:
                assert key_of(first) > key_of(second)

    def test_grouping(self, js_elements) -> None:
        visible = build_index(js_elements, CoreSettings(group_by_type=True))
        assert [g.id for g in visible] == [
            "group-import", "group-comment", "group-class", "group-export",
            "group-function", "group-conditional", "group-loop", "group-variable",
        ]
        functions = visible[4]
        assert functions.name == "Functions (4)"
        assert functions.scope == "group"
        assert functions.span == Span(0, 0, 0, 0)
        assert [e.name for e in functions.children] == ["constructor", "parse", "add", "multiply"]

    def test_ungrouped_elements_have_no_children(self, js_elements) -> None:
        assert all(e.children is None for e in build_index(js_elements, CoreSettings()))


class TestSearch:
    """Tests for search scoring."""

    def test_exact_name(self, js_elements) -> None:
        results = search_elements(js_elements, "add")
        assert len(results) == 1
        assert results[0].element.name == "add"
        assert results[0].score == 100 + 20
        assert results[0].match_count == 1
        assert results[0].context == "add"

    def test_parameter_match(self, js_elements) -> None:
        results = search_elements(js_elements, "input")
        assert [r.element.name for r in results] == ["parse"]
        assert results[0].score == 10 + 20
        assert results[0].context == "parameter input"

    def test_scope_match_and_tie_order(self, js_elements) -> None:
        results = search_elements(js_elements, "Parse")
        assert [(r.element.name, r.score) for r in results] == [
            ("parse", 100 + 15 + 20),
            ("Parser", 50 + 15),
            ("class Parser extends Base {", 50 + 5),
            ("constructor", 15 + 20),
            ("if statement", 15),
            ("for loop", 15),
        ]

    def test_scores_follow_formula(self, js_elements) -> None:
        for query in ("a", "parse", "input", "for", "global", "x"):
            for result in search_elements(js_elements, query):
                assert result.score > 0
                assert result.match_count >= 1
                assert result == score_element(result.element, query)

    def test_partial_and_description(self) -> None:
        element = Element(
            id="function-0",
            kind=ElementKind.FUNCTION,
            name="loadUser",
            span=Span(1, 1, 1, 1),
            scope="UserService",
            params=("user", "userId"),
            description="Function with user loading",
        )
        result = score_element(element, "user")
        assert result.score == 50 + 25 + 15 + 10 + 10 + 20
        assert result.match_count == 5

    def test_no_match_has_no_boost(self) -> None:
        assert score_element(make_element(0, "alpha"), "zzz") is None

    def test_capped_at_twenty(self) -> None:
        elements = scan("\n".join(f"function fn{i}() {{}}" for i in range(30)))
        results = search_elements(elements, "fn")
        assert len(results) == 20
        assert [r.element.name for r in results[:3]] == ["fn0", "fn1", "fn2"]

    def test_empty_query(self, js_elements) -> None:
        assert search_elements(js_elements, "") == ()
        assert search_elements(js_elements, "   ") == ()


class TestSearchCache:
    """Tests for the bounded search cache."""

    def test_evicts_least_recently_used(self) -> None:
        cache = SearchCache(max_size=2)
        cache.put("a", ())
        cache.put("b", ())
        cache.get("a")
        cache.put("c", ())
        assert cache.get("b") is None
        assert cache.get("a") == ()
        assert len(cache) == 2

    def test_cleared_on_load(self, navigator: NavigationIndex, js_elements) -> None:
        navigator.search("add")
        assert len(navigator.cache) == 1
        navigator.load(js_elements)
        assert len(navigator.cache) == 0

    def test_cached_results_reused(self, navigator: NavigationIndex) -> None:
        first = navigator.search("Add")
        assert navigator.search("add") is first


class TestHistory:
    """Tests for navigation history."""

    def test_back_at_start_is_noop(self, navigator: NavigationIndex, js_elements) -> None:
        assert navigator.history_move("back") is None
        navigator.navigate_to(js_elements[0])
        assert navigator.history_move("back") is None
        assert navigator.history_index == 0
        assert navigator.selected == js_elements[0]

    def test_back_and_forward(self, navigator: NavigationIndex, js_elements) -> None:
        first, second = js_elements[0], js_elements[1]
        navigator.navigate_to(first)
        navigator.navigate_to(second)
        assert navigator.history_move("back") == first
        assert navigator.history_index == 0
        assert navigator.history_move("forward") == second
        assert navigator.history_move("forward") is None
        assert navigator.history_index == 1

    def test_navigate_truncates_forward_history(self, navigator: NavigationIndex, js_elements) -> None:
        a, b, c, d = js_elements[:4]
        for element in (a, b, c):
            navigator.navigate_to(element)
        navigator.history_move("back")
        navigator.history_move("back")
        navigator.navigate_to(d)
        assert [entry.element for entry in navigator.history] == [a, d]
        assert navigator.history_index == 1

    def test_history_is_bounded(self, js_elements) -> None:
        index = NavigationIndex(history_limit=3)
        index.load(js_elements)
        for element in js_elements[:5]:
            index.navigate_to(element)
        assert [entry.element for entry in index.history] == list(js_elements[2:5])
        assert index.history_index == 2

    def test_entry_records_action(self, navigator: NavigationIndex, js_elements) -> None:
        navigator.navigate_to(js_elements[0], ActionKind.SEARCH)
        assert navigator.history[0].action == ActionKind.SEARCH
        assert navigator.history[0].timestamp > 0

    def test_unknown_direction(self, navigator: NavigationIndex) -> None:
        assert navigator.history_move("sideways") is None


class TestSelection:
    """Tests for breadcrumbs, jumps and listeners."""

    def test_breadcrumbs_include_scope(self, navigator: NavigationIndex, js_elements) -> None:
        conditional = element_named(js_elements, "if statement")
        navigator.navigate_to(conditional)
        assert [e.name for e in navigator.breadcrumbs] == ["parse", "if statement"]

    def test_breadcrumbs_for_global(self, navigator: NavigationIndex, js_elements) -> None:
        add = element_named(js_elements, "add")
        navigator.navigate_to(add)
        assert navigator.breadcrumbs == (add,)

    def test_breadcrumbs_fall_back_to_name(self, navigator: NavigationIndex, js_elements) -> None:
        orphan = Element(id="x", kind=ElementKind.VARIABLE, name="v", span=Span(5, 1, 5, 1), scope="add")
        navigator.navigate_to(orphan)
        assert [e.name for e in navigator.breadcrumbs] == ["add", "v"]

    def test_jump_to_line(self, navigator: NavigationIndex) -> None:
        assert navigator.jump_to_line(16).name == "add"
        assert navigator.history[-1].action == ActionKind.JUMP
        assert navigator.jump_to_line(999) is None
        assert navigator.selected.name == "add"

    def test_jump_to_line_uses_scan_order(self, navigator: NavigationIndex) -> None:
        navigator.apply_settings(CoreSettings(sort_by=SortKey.NAME, sort_order=SortOrder.DESC))
        assert navigator.jump_to_line(3).kind == ElementKind.CLASS

    def test_jump_to_kind(self, navigator: NavigationIndex) -> None:
        assert navigator.jump_to_kind("loop").name == "for loop"
        assert navigator.jump_to_kind(ElementKind.CLASS).name == "Parser"
        assert navigator.jump_to_kind("bogus") is None

    def test_listener_receives_selection(self, navigator: NavigationIndex, js_elements) -> None:
        seen = []
        navigator.add_listener(lambda element, action: seen.append((element.name, action)))
        navigator.navigate_to(element_named(js_elements, "add"))
        navigator.history_move("back")
        assert seen == [("add", ActionKind.NAVIGATE)]

    def test_failing_listener_is_contained(self, navigator: NavigationIndex, js_elements) -> None:
        seen = []

        def broken(element, action):
            raise RuntimeError("boom")

        navigator.add_listener(broken)
        navigator.add_listener(lambda element, action: seen.append(element))
        navigator.navigate_to(js_elements[0])
        assert seen == [js_elements[0]]
        assert navigator.selected == js_elements[0]

    def test_keyboard_navigation(self, navigator: NavigationIndex, js_elements) -> None:
        assert navigator.select_next() == js_elements[0]
        assert navigator.select_next() == js_elements[1]
        assert navigator.select_previous() == js_elements[0]
        assert navigator.select_previous() is None
        assert navigator.select_last() == js_elements[-1]
        assert navigator.select_next() is None

    def test_keyboard_navigation_walks_group_members(self, navigator: NavigationIndex) -> None:
        navigator.apply_settings(CoreSettings(group_by_type=True))
        assert navigator.select_first().kind == ElementKind.IMPORT

    def test_set_query_filters_visible(self, navigator: NavigationIndex) -> None:
        navigator.set_query("loop")
        assert [e.name for e in navigator.visible] == ["for loop"]


class TestCommandsAndDescriptions:
    """Tests for voice commands and announcements."""

    def test_navigate_command(self, navigator: NavigationIndex) -> None:
        result = interpret_command(navigator, "Navigate to function add")
        assert result.action == "navigate"
        assert result.element.name == "add"
        assert navigator.selected.name == "add"

    def test_navigate_unknown_name(self, navigator: NavigationIndex) -> None:
        result = interpret_command(navigator, "navigate to class Missing")
        assert result.element is None
        assert result.message == "No class named missing"

    def test_jump_and_back(self, navigator: NavigationIndex) -> None:
        interpret_command(navigator, "navigate to function add")
        assert interpret_command(navigator, "jump to line 7").element.name == "parse"
        assert interpret_command(navigator, "go back").element.name == "add"
        assert interpret_command(navigator, "go forward").element.name == "parse"

    def test_search_command(self, navigator: NavigationIndex) -> None:
        result = interpret_command(navigator, "search for multiply")
        assert result.action == "search"
        assert result.results[0].element.name == "multiply"

    def test_unknown_command(self, navigator: NavigationIndex) -> None:
        assert interpret_command(navigator, "sing a song").action == "unknown"

    def test_describe_element(self, js_elements) -> None:
        parse = element_named(js_elements, "parse")
        assert describe_element(parse) == "function parse on line 7 in Parser with parameters input, options"
        quiet = CoreSettings(show_line_numbers=False, show_scope=False, show_complexity=True)
        assert describe_element(parse, quiet) == "function parse with parameters input, options complexity 1"
