"""
Template interpolation for suite payloads and journey steps.

``{{expr}}`` tokens are resolved against a variable bag:

- ``id:TAG``            fresh identifier ``TAG_`` + 27 hex chars
- ``nowIso``            current instant, ISO-8601 UTC
- ``nowPlusMinutes:N``  current instant + N minutes (N defaults to 0)
- ``name`` / ``a.b[2].c``  direct key lookup, then path lookup

Generated tokens are memoized per ``TemplateState`` so ``{{id:order}}`` yields
the same value everywhere inside one pass. Variable lookups are never cached,
so values captured mid-pass are always visible.
"""

import json
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Union

from agent_contract.utils.error_handling import TemplateResolutionError

FULL_TOKEN = re.compile(r"^\{\{\s*([^}]+)\s*\}\}$")
EMBEDDED_TOKEN = re.compile(r"\{\{\s*([^}]+)\s*\}\}")
PATH_SEGMENT = re.compile(r"([^\[.\]]+)|\[(\d+)\]")

_MISSING = object()


@dataclass
class TemplateState:
    """Token cache for one interpolation pass"""
    token_cache: Dict[str, Any] = field(default_factory=dict)


def iso_now(offset_minutes: float = 0) -> str:
    """UTC timestamp in the ``2024-01-01T00:00:00.000Z`` shape"""
    instant = datetime.now(timezone.utc) + timedelta(minutes=offset_minutes)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_path_segments(path_expr: str) -> List[Union[str, int]]:
    cleaned = path_expr.strip()
    if cleaned.startswith("$."):
        cleaned = cleaned[2:]
    elif cleaned.startswith("$"):
        cleaned = cleaned[1:]

    segments: List[Union[str, int]] = []
    for name, index in PATH_SEGMENT.findall(cleaned):
        if name:
            segments.append(name)
        if index:
            segments.append(int(index))
    return segments


def lookup_path(root: Any, path_expr: str, default: Any = None) -> Any:
    """Walk ``a.b[2].c`` into nested dicts and lists; ``default`` when any hop is missing"""
    current = root
    for segment in parse_path_segments(path_expr):
        if current is None:
            return default
        if isinstance(segment, int):
            if not isinstance(current, list) or segment >= len(current):
                return default
            current = current[segment]
            continue
        if not isinstance(current, Mapping) or segment not in current:
            return default
        current = current[segment]
    return current


def _minutes(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        return 0
    return value if value == value and abs(value) != float("inf") else 0


def resolve_token(expression: str, variables: Mapping[str, Any], state: TemplateState) -> Any:
    """Resolve one token expression

    Raises:
        TemplateResolutionError: If the expression matches nothing in ``variables``
    """
    expr = expression.strip()
    if not expr:
        return ""

    if expr in state.token_cache:
        return state.token_cache[expr]

    if expr.startswith("id:"):
        tag = expr.split(":")[1] or "id"
        value = f"{tag}_{uuid.uuid4().hex[:27]}"
        state.token_cache[expr] = value
        return value

    if expr == "nowIso":
        value = iso_now()
        state.token_cache[expr] = value
        return value

    if expr.startswith("nowPlusMinutes:"):
        value = iso_now(_minutes(expr.split(":")[1]))
        state.token_cache[expr] = value
        return value

    if expr in variables:
        return variables[expr]

    value = lookup_path(variables, expr, default=_MISSING)
    if value is not _MISSING:
        return value

    raise TemplateResolutionError(f'Unresolved template token: "{{{{{expr}}}}}"')


def _as_inline_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def interpolate_string(value: str, variables: Mapping[str, Any], state: TemplateState) -> Any:
    """A lone token keeps its resolved type; embedded tokens are spliced in as text"""
    full = FULL_TOKEN.match(value)
    if full:
        return resolve_token(full.group(1), variables, state)

    return EMBEDDED_TOKEN.sub(
        lambda m: _as_inline_text(resolve_token(m.group(1), variables, state)),
        value,
    )


def interpolate_value(value: Any, variables: Mapping[str, Any], state: TemplateState) -> Any:
    """Recursively interpolate strings inside lists and dicts"""
    if isinstance(value, str):
        return interpolate_string(value, variables, state)
    if isinstance(value, list):
        return [interpolate_value(entry, variables, state) for entry in value]
    if isinstance(value, dict):
        return {key: interpolate_value(entry, variables, state) for key, entry in value.items()}
    return value
