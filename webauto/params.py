# webauto/params.py
"""
@file params.py
@brief Quoted-literal extraction from step text and base-URL resolution.
"""

from __future__ import annotations

import re
from typing import List, Optional

_QUOTED = re.compile(r'"([^"]*)"|\'([^\']*)\'')

DEFAULT_BASE_URL = "https://localhost"


def extract_all_parameters(step_text: Optional[str]) -> List[str]:
    """All single- or double-quoted literals, in order of appearance."""
    if not step_text or not step_text.strip():
        return []
    return [m.group(1) if m.group(1) is not None else m.group(2) for m in _QUOTED.finditer(step_text)]


def extract_parameter(step_text: Optional[str], index: int) -> Optional[str]:
    """The literal at ``index`` (0-based), or None when out of range."""
    params = extract_all_parameters(step_text)
    if index < 0 or index >= len(params):
        return None
    return params[index]


def has_parameters(step_text: Optional[str]) -> bool:
    return bool(step_text) and _QUOTED.search(step_text) is not None


def count_parameters(step_text: Optional[str]) -> int:
    return len(extract_all_parameters(step_text))


def is_full_url(value: Optional[str]) -> bool:
    return bool(value) and value.lower().startswith(("http://", "https://"))


def resolve_url(fragment: str, step_text: Optional[str] = None, base_url: Optional[str] = None) -> str:
    """
    Full URLs pass through. Otherwise a full URL quoted in the step text wins,
    else the fragment is joined onto ``base_url``.
    """
    if is_full_url(fragment):
        return fragment
    for candidate in extract_all_parameters(step_text):
        if is_full_url(candidate):
            return candidate
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    return f"{base}/{(fragment or '').lstrip('/')}"
