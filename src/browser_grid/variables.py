"""Scenario variable placeholders: ``${name}`` and ``{{name}}``.

Names are plain identifiers, so JavaScript template literals such as
``${document.title}`` pass through untouched. ``$${`` is an escape for a
literal ``${``.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from browser_grid.errors import UndefinedVariable

PLACEHOLDER_RE = re.compile(r"(\$\$\{)|\$\{\s*([A-Za-z_]\w*)\s*\}|\{\{\s*([A-Za-z_]\w*)\s*\}\}")


def _name(match: re.Match) -> str | None:
    return match.group(2) or match.group(3)


def _walk_strings(value: Any) -> Iterable[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _walk_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _walk_strings(item)


def find_variables(steps: Iterable[BaseModel | Mapping[str, Any]]) -> list[str]:
    """Return placeholder names referenced by the steps, in first-seen order."""
    seen: dict[str, None] = {}
    for step in steps:
        data = step.model_dump() if isinstance(step, BaseModel) else step
        for text in _walk_strings(data):
            for match in PLACEHOLDER_RE.finditer(text):
                name = _name(match)
                if name:
                    seen.setdefault(name, None)
    return list(seen)


def substitute(value: Any, variables: Mapping[str, Any]) -> Any:
    """Return a copy of ``value`` with every placeholder replaced.

    Containers are rebuilt rather than modified; non-string leaves are
    returned unchanged.

    Raises:
        UndefinedVariable: A placeholder has no value in ``variables``
    """
    if isinstance(value, str):
        def replace(match: re.Match) -> str:
            if match.group(1):
                return "${"
            name = _name(match)
            if name not in variables:
                raise UndefinedVariable(f"Variable '{name}' has no value")
            return str(variables[name])

        return PLACEHOLDER_RE.sub(replace, value)
    if isinstance(value, Mapping):
        return {key: substitute(item, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, variables) for item in value]
    if isinstance(value, tuple):
        return tuple(substitute(item, variables) for item in value)
    return value
