"""Message templates and the default message formatter.

Templates use 1-based positional placeholders: ``%1``, ``%1$s`` or ``%1$d``.
``%%`` renders a literal percent sign.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

_PLACEHOLDER = re.compile(r"%(?:(%)|(\d+)(?:\$([sd]))?)")


@dataclass
class MessageTemplates:
    """Templates for every message the validator produces."""
    required: str = "Argument #%1$s is required"
    type_mismatch: str = 'Argument #%1$s must be of type "%2$s"'
    invalid_descriptor: str = "Parameter #%1$d of the specification is invalid"


def format_message(template: str, substitutions: Sequence[Any] = ()) -> str:
    def _replace(match: re.Match) -> str:
        if match.group(1):
            return "%"
        index = int(match.group(2)) - 1
        if index < 0 or index >= len(substitutions):
            raise IndexError(f"Placeholder %{match.group(2)} has no substitution in {template!r}")
        value = substitutions[index]
        if match.group(3) == "d":
            return str(int(value))
        return str(value)

    return _PLACEHOLDER.sub(_replace, template)


class MessageFormatter:
    """
    Default message-formatting hook.

    Looks the template up in an optional translation table before
    substituting, so callers can swap wording without touching the validator.
    """

    def __init__(self, translations: Optional[Dict[str, str]] = None):
        self.translations = dict(translations or {})

    def __call__(self, template: str, substitutions: Sequence[Any] = ()) -> str:
        return format_message(self.translations.get(template, template), substitutions)
