from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def option_list(options: Mapping | None, field: str = "choices") -> list[str]:
    if not isinstance(options, Mapping):
        return []
    values = options.get(field)
    if not isinstance(values, (list, tuple)):
        return []
    return ["" if v is None else str(v) for v in values]


def resolve_choice(user_input: Any, choices: list[str]) -> int | None:
    """Position of the first choice equal to ``user_input``; no fuzzy matching."""
    if not isinstance(user_input, str) or not choices:
        return None
    for idx, choice in enumerate(choices):
        if choice == user_input:
            return idx
    return None


def choice_label(choices: list[str], index: int) -> str:
    if 0 <= index < len(choices) and choices[index]:
        return choices[index]
    return f"Option {index + 1}"
