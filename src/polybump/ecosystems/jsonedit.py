"""Span-preserving JSON editing.

``json`` round-trips lose indentation, key order quirks and trailing
newlines. Instead the document is scanned once, recording the source span of
every value by its key path; an edit splices a freshly encoded value over
exactly that span and leaves the rest of the text untouched.
"""

from __future__ import annotations

import json
import re
from typing import Any

JsonPath = tuple[Any, ...]

_WHITESPACE = " \t\r\n"
_LITERAL = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?|true|false|null")


class _SpanScanner:
    """Recursive descent over already-validated JSON text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.spans: dict[JsonPath, tuple[int, int]] = {}

    def skip(self, index: int) -> int:
        while index < len(self.text) and self.text[index] in _WHITESPACE:
            index += 1
        return index

    def value(self, index: int, path: JsonPath) -> int:
        index = self.skip(index)
        char = self.text[index]
        if char == "{":
            end = self.object(index, path)
        elif char == "[":
            end = self.array(index, path)
        elif char == '"':
            end = self.string(index)
        else:
            match = _LITERAL.match(self.text, index)
            if not match:
                raise ValueError(f"Unexpected character {char!r} at offset {index}")
            end = match.end()
        self.spans[path] = (index, end)
        return end

    def string(self, index: int) -> int:
        index += 1
        while self.text[index] != '"':
            index += 2 if self.text[index] == "\\" else 1
        return index + 1

    def object(self, index: int, path: JsonPath) -> int:
        index = self.skip(index + 1)
        if self.text[index] == "}":
            return index + 1
        while True:
            key_end = self.string(index)
            key = json.loads(self.text[index:key_end])
            index = self.skip(key_end) + 1  # past ':'
            index = self.skip(self.value(index, (*path, key)))
            if self.text[index] == "}":
                return index + 1
            index = self.skip(index + 1)  # past ','

    def array(self, index: int, path: JsonPath) -> int:
        index = self.skip(index + 1)
        if self.text[index] == "]":
            return index + 1
        position = 0
        while True:
            index = self.skip(self.value(index, (*path, position)))
            position += 1
            if self.text[index] == "]":
                return index + 1
            index = self.skip(index + 1)


def load(text: str) -> tuple[Any, dict[JsonPath, tuple[int, int]]]:
    """Parse JSON and return the data together with the span of every value.

    Raises:
        ValueError: If the text is not valid JSON.
    """
    data = json.loads(text)
    scanner = _SpanScanner(text)
    scanner.value(0, ())
    return data, scanner.spans


def replace_value(text: str, path: JsonPath, value: Any) -> str:
    """Replace the value at ``path`` with the JSON encoding of ``value``.

    Raises:
        KeyError: If nothing exists at ``path``.
        ValueError: If the text is not valid JSON.
    """
    _, spans = load(text)
    start, end = spans[path]
    return text[:start] + json.dumps(value, ensure_ascii=False) + text[end:]
