"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterator, Union


@dataclass(frozen=True)
class Parsed:
    """A structured payload was found and decoded."""
    value: Any


@dataclass(frozen=True)
class ParseFailed:
    """No decodable structured payload was found in the raw text."""
    raw: str


ParseResult = Union[Parsed, ParseFailed]


def _strip_fences(text: str) -> str:
    if not text.lstrip().startswith("```"):
        return text
    lines = [l for l in text.split("\n") if not l.strip().startswith("```")]
    return "\n".join(lines)


def _balanced_spans(text: str) -> Iterator[str]:
    """Yield every balanced ``{...}`` span, in order of its opening brace.

    Braces inside JSON string literals are ignored.
    """
    for start, ch in enumerate(text):
        if ch != "{":
            continue
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            c = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    yield text[start:pos + 1]
                    break


def parse_structured(raw: str) -> ParseResult:
    """Locate and decode a JSON object embedded in untrusted LLM output.

    Tries in order:
    1. Strip markdown code fences, then json.loads on the whole text
    2. The first balanced ``{...}`` span that decodes as JSON
    3. ParseFailed
    """
    if not raw or not raw.strip():
        return ParseFailed(raw or "")

    text = _strip_fences(raw).strip()
    try:
        return Parsed(json.loads(text))
    except json.JSONDecodeError:
        pass

    for span in _balanced_spans(text):
        try:
            return Parsed(json.loads(span))
        except json.JSONDecodeError:
            continue

    return ParseFailed(raw)
