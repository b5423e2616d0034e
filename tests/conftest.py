"""Pytest fixtures for tactile-code tests."""

import pytest

from tactile_code.audio import CueMapper, NullSink
from tactile_code.navigator import NavigationIndex
from tactile_code.scanner import scan

JS_SOURCE = """\
import { readFile } from 'fs';
// Utility helpers
export class Parser extends Base {
  constructor(source) {
    this.source = source;
  }
  parse(input, options) {
    if (input && options) {
      return input;
    }
    for (const item of input) {
      console.log(item);
    }
  }
}
function add(a, b) {
  return a + b;
}
const multiply = (x, y) => x * y;
"""

PY_SOURCE = """\
import os
from typing import List


class Walker(Base):
    def walk(self, root, *args, **kwargs):
        for entry in os.listdir(root):
            if entry.startswith("."):
                continue
        return []


def helper(path: str = "."):
    return path
"""


@pytest.fixture
def js_source() -> str:
    return JS_SOURCE


@pytest.fixture
def py_source() -> str:
    return PY_SOURCE


@pytest.fixture
def js_elements():
    return scan(JS_SOURCE)


@pytest.fixture
def navigator(js_elements) -> NavigationIndex:
    index = NavigationIndex(history_limit=200)
    index.load(js_elements)
    return index


@pytest.fixture
def silent_mapper():
    """Cue mapper with no device that records every request."""
    mapper = CueMapper(sink=NullSink())
    mapper.requests = []
    mapper.add_listener(mapper.requests.append)
    yield mapper
    mapper.close()


def element_named(elements, name: str, kind=None):
    for element in elements:
        if element.name == name and (kind is None or element.kind == kind):
            return element
    raise AssertionError(f"No element named {name!r}")
