"""Placeholder substitution for family templates.

Family identifiers, display names and descriptions are configured as plain
strings carrying ``{name}`` placeholders. Only a fixed set of names is
recognised; anything else is rejected instead of being silently left in the
rendered text.
"""

from __future__ import annotations

import re
from typing import Iterable, Mapping

from .errors import TemplateError

PLATFORM = "platform"
COMMIT_HASH = "commitHash"
RELEASE_DATE = "releaseDate"

KNOWN_PLACEHOLDERS: frozenset[str] = frozenset({PLATFORM, COMMIT_HASH, RELEASE_DATE})

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def placeholders_in(template: str) -> tuple[str, ...]:
    return tuple(match.group(1) for match in _PLACEHOLDER_RE.finditer(template))


def validate_template(template: str, allowed: Iterable[str] = KNOWN_PLACEHOLDERS, *, field: str = "template") -> None:
    allowed_set = frozenset(allowed)
    for name in placeholders_in(template):
        if name not in KNOWN_PLACEHOLDERS:
            raise TemplateError(f"{field}: unknown placeholder '{{{name}}}' in {template!r}")
        if name not in allowed_set:
            raise TemplateError(f"{field}: placeholder '{{{name}}}' is not available here ({template!r})")


def apply_template(template: str, values: Mapping[str, str]) -> str:
    """Substitute ``values`` into ``template``.

    Every placeholder found must be one of ``KNOWN_PLACEHOLDERS`` and must be
    present in ``values``; otherwise :class:`TemplateError` is raised.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in KNOWN_PLACEHOLDERS:
            raise TemplateError(f"unknown placeholder '{{{name}}}' in {template!r}")
        if name not in values:
            raise TemplateError(f"no value for placeholder '{{{name}}}' in {template!r}")
        return str(values[name])

    return _PLACEHOLDER_RE.sub(_replace, template)
