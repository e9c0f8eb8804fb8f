"""
JSON extraction from model output.

Models often wrap the object we asked for in prose or code fences. We try
a strict parse first, then fall back to the first balanced {...} block.
Every generative component parses through here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..core.errors import GenerationError


@dataclass
class ParseResult:
    value: Optional[Dict[str, Any]] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.value is not None


def _first_balanced_object(text: str) -> Optional[str]:
    """Return the first balanced {...} substring, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_json_object(raw: str) -> ParseResult:
    """Parse a JSON object out of raw model output."""
    if not raw or not raw.strip():
        return ParseResult(error="empty response")

    try:
        value = json.loads(raw)
        if isinstance(value, dict):
            return ParseResult(value=value)
    except json.JSONDecodeError:
        pass

    candidate = _first_balanced_object(raw)
    if candidate is None:
        return ParseResult(error="no JSON object found in response")
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return ParseResult(error=f"invalid JSON object: {e.msg}")
    if not isinstance(value, dict):
        return ParseResult(error="extracted JSON is not an object")
    return ParseResult(value=value)


def require_json_object(raw: str, where: str) -> Dict[str, Any]:
    """Like parse_json_object but raises GenerationError on failure."""
    result = parse_json_object(raw)
    if not result.ok:
        raise GenerationError(f"{where}: {result.error}")
    return result.value
