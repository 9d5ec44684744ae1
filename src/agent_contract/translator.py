"""
Translator component - converts one natural-language sentence into a canonical request envelope

Heuristic and regex driven. Every grammar rule is a module-level function so
it can be exercised on its own; ``Translator.translate`` stitches them together
and re-validates the result, so a malformed command can never leave this module.
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from agent_contract.catalog.base import SchemaCatalog, assert_safe_identifier
from agent_contract.models.commands import CommandAction, QueryCommand, command_action, command_tables, iter_commands
from agent_contract.models.request import TranslationRequest
from agent_contract.models.response import InferredIntent, TranslationError, TranslationResult
from agent_contract.utils.error_handling import ContractValidationError
from agent_contract.validator import validate_request

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 8

NUMBER_TOKEN = re.compile(r"^-?\d+(\.\d+)?$")

EXPLICIT_TABLE_PATTERNS = [
    re.compile(r"\bfrom\s+([a-zA-Z_][a-zA-Z0-9_\s-]*)", re.IGNORECASE),
    re.compile(r"\binto\s+([a-zA-Z_][a-zA-Z0-9_\s-]*)", re.IGNORECASE),
    re.compile(r"\bupdate\s+([a-zA-Z_][a-zA-Z0-9_\s-]*)", re.IGNORECASE),
    re.compile(r"\bdelete\s+from\s+([a-zA-Z_][a-zA-Z0-9_\s-]*)", re.IGNORECASE),
    re.compile(r"\btable\s+([a-zA-Z_][a-zA-Z0-9_\s-]*)", re.IGNORECASE),
]

WHERE_PATTERN = re.compile(r"\bwhere\b([\s\S]+)$", re.IGNORECASE)
WHERE_TAIL_PATTERN = re.compile(
    r"\s+(?:order\s+by\s+[a-zA-Z_][a-zA-Z0-9_]*(?:\s+(?:asc|desc))?|(?:limit|top|first)\s+\d+)\b[\s\S]*$",
    re.IGNORECASE,
)
AND_SPLIT = re.compile(r"\s+and\s+", re.IGNORECASE)
LIST_SPLIT = re.compile(r",")

# Quoted literals are blanked out before keyword scans so "no limit club" stays a value
QUOTED_LITERAL = re.compile(r"'[^']*'|\"[^\"]*\"")

IN_CLAUSE = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)\s+in\s*\((.+)\)$", re.IGNORECASE)
NULL_CLAUSE = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)\s+is\s+(not\s+)?null$", re.IGNORECASE)
BINARY_CLAUSE = re.compile(
    r"^([a-zA-Z_][a-zA-Z0-9_]*)\s*(=|!=|>=|<=|>|<|like|ilike)\s*(.+)$",
    re.IGNORECASE,
)
LOOSE_CLAUSE = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)\s+(.+)$")

BINARY_OPERATORS = {
    "=": "eq",
    "!=": "neq",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "like": "like",
    "ilike": "ilike",
}

# The [\s,] prefix keeps "T14:00:00Z" inside ISO timestamps from reading as an assignment
ASSIGNMENT_PATTERN = re.compile(
    r"(?:^|[\s,])([a-zA-Z_][a-zA-Z0-9_]*)\s*(=|:)\s*(\"[^\"]*\"|'[^']*'|[^,\s]+)"
)
SET_SPLIT = re.compile(r"\bset\b", re.IGNORECASE)
SET_TAIL_PATTERN = re.compile(r"\bwhere\b[\s\S]*$", re.IGNORECASE)

LIMIT_PATTERN = re.compile(r"\b(?:limit|top|first)\s+(\d+)\b", re.IGNORECASE)
ORDER_PATTERN = re.compile(r"\border\s+by\s+([a-zA-Z_][a-zA-Z0-9_]*)(?:\s+(asc|desc))?", re.IGNORECASE)
SELECT_PATTERN = re.compile(r"\b(?:show|list|get|fetch|find)\s+(.+?)\s+from\b", re.IGNORECASE)
SELECT_ALL = ("all", "*", "everything")

Primitive = Union[str, int, float, bool, None]


def parse_primitive_token(token: str) -> Primitive:
    """Quotes stripped; null/true/false literals; integers and decimals; else text"""
    trimmed = re.sub(r"^['\"]|['\"]$", "", token.strip())
    lowered = trimmed.lower()

    if lowered == "null":
        return None
    if lowered == "true":
        return True
    if lowered == "false":
        return False

    if NUMBER_TOKEN.match(trimmed):
        return float(trimmed) if "." in trimmed else int(trimmed)

    return trimmed


def mask_quoted(text: str) -> str:
    """Same-length copy of ``text`` with every quoted literal blanked out"""
    return QUOTED_LITERAL.sub(lambda match: "#" * len(match.group(0)), text)


def split_outside_quotes(pattern: re.Pattern, text: str) -> List[str]:
    parts = []
    start = 0
    for match in pattern.finditer(mask_quoted(text)):
        parts.append(text[start:match.start()])
        start = match.end()
    parts.append(text[start:])
    return parts


def infer_action(text: str) -> CommandAction:
    lowered = mask_quoted(text).lower()

    if re.search(r"\b(delete|remove)\b", lowered):
        return "delete"
    if re.search(r"\b(update|set|change|mark)\b", lowered):
        return "update"
    if re.search(r"\b(create|add|insert|upsert)\b", lowered):
        return "insert"
    return "query"


def infer_table_name(text: str, catalog: SchemaCatalog) -> Optional[str]:
    """Explicit grammar hints first, then the best alias found anywhere in the sentence"""
    lowered = mask_quoted(text).lower()

    for pattern in EXPLICIT_TABLE_PATTERNS:
        match = pattern.search(lowered)
        raw = match.group(1).strip() if match else ""
        if not raw:
            continue

        resolved = catalog.resolve_table_name(raw)
        if resolved:
            return resolved

        # Captures often run into the rest of the phrase; retry with the first word
        resolved = catalog.resolve_table_name(raw.split()[0])
        if resolved:
            return resolved

    candidates = catalog.detect_tables_in_text(lowered, 1)
    return candidates[0] if candidates else None


def extract_where_segment(text: str) -> Optional[str]:
    """Text after ``where``, minus any trailing ``order by``/``limit`` clause outside quotes"""
    masked = mask_quoted(text)
    match = WHERE_PATTERN.search(masked)
    if not match:
        return None
    tail = WHERE_TAIL_PATTERN.search(masked, match.start(1))
    segment = text[match.start(1):tail.start() if tail else len(text)].strip()
    return segment or None


def parse_where_filters(text: str, table_name: str, catalog: SchemaCatalog, notes: List[str]) -> List[Dict[str, Any]]:
    segment = extract_where_segment(text)
    if not segment:
        return []

    filters: List[Dict[str, Any]] = []
    for part in (p.strip() for p in split_outside_quotes(AND_SPLIT, segment)):
        if not part:
            continue

        in_match = IN_CLAUSE.match(part)
        if in_match:
            column = catalog.resolve_column_name(table_name, in_match.group(1))
            if not column:
                notes.append(f"Ignored unknown filter column: {in_match.group(1)}")
                continue
            values = [parse_primitive_token(v) for v in split_outside_quotes(LIST_SPLIT, in_match.group(2))]
            filters.append({"column": column, "op": "in", "value": values})
            continue

        null_match = NULL_CLAUSE.match(part)
        if null_match:
            column = catalog.resolve_column_name(table_name, null_match.group(1))
            if not column:
                notes.append(f"Ignored unknown filter column: {null_match.group(1)}")
                continue
            filters.append({"column": column, "op": "not_null" if null_match.group(2) else "is_null"})
            continue

        binary_match = BINARY_CLAUSE.match(part)
        if binary_match:
            column = catalog.resolve_column_name(table_name, binary_match.group(1))
            if not column:
                notes.append(f"Ignored unknown filter column: {binary_match.group(1)}")
                continue
            op = BINARY_OPERATORS[binary_match.group(2).lower()]
            filters.append({"column": column, "op": op, "value": parse_primitive_token(binary_match.group(3))})
            continue

        # Last chance for shapes like "id 123"
        loose_match = LOOSE_CLAUSE.match(part)
        if loose_match:
            column = catalog.resolve_column_name(table_name, loose_match.group(1))
            if not column:
                notes.append(f"Ignored unknown filter expression: {part}")
                continue
            filters.append({"column": column, "op": "eq", "value": parse_primitive_token(loose_match.group(2))})
            notes.append(f'Assumed equality filter for loose expression: "{part}"')
            continue

        notes.append(f"Ignored unsupported filter expression: {part}")

    return filters


def parse_assignments(text: str, table_name: str, catalog: SchemaCatalog, notes: List[str]) -> Dict[str, Primitive]:
    """``status=active``, ``total_minor=2500``, ``name:"John"``"""
    values: Dict[str, Primitive] = {}
    for match in ASSIGNMENT_PATTERN.finditer(text):
        raw_column = match.group(1)
        column = catalog.resolve_column_name(table_name, raw_column)
        if not column:
            notes.append(f"Ignored unknown assignment column: {raw_column}")
            continue
        values[column] = parse_primitive_token(match.group(3))
    return values


def extract_set_segment(text: str) -> str:
    """Text between ``set`` and ``where``; the whole sentence when there is no ``set``"""
    masked = mask_quoted(text)
    set_match = SET_SPLIT.search(masked)
    if not set_match:
        return text
    tail = SET_TAIL_PATTERN.search(masked, set_match.end())
    return text[set_match.end():tail.start() if tail else len(text)]


def parse_limit(text: str) -> Optional[int]:
    match = LIMIT_PATTERN.search(mask_quoted(text))
    return int(match.group(1)) if match else None


def parse_sort(text: str, table_name: str, catalog: SchemaCatalog) -> List[Dict[str, str]]:
    match = ORDER_PATTERN.search(mask_quoted(text))
    if not match:
        return []
    column = catalog.resolve_column_name(table_name, match.group(1))
    if not column:
        return []
    direction = "desc" if (match.group(2) or "").lower() == "desc" else "asc"
    return [{"column": column, "direction": direction}]


def parse_select(text: str, table_name: str, catalog: SchemaCatalog, notes: List[str]) -> Optional[List[str]]:
    """Column projection from ``show id,name from ...``; None means all columns"""
    match = SELECT_PATTERN.search(mask_quoted(text))
    if not match:
        return None

    segment = text[match.start(1):match.end(1)].strip().lower()
    if segment in SELECT_ALL:
        return None

    requested = [catalog.resolve_column_name(table_name, part.strip()) for part in segment.split(",")]
    columns = [column for column in requested if column]
    if columns:
        return columns

    notes.append("Could not resolve requested select columns; defaulting to all columns.")
    return None


def compute_confidence(action: str, table_name: Optional[str], notes: List[str]) -> float:
    """Explainability signal only; never used as a gate"""
    confidence = 0.45
    if table_name:
        confidence += 0.25
    if action != "query":
        confidence += 0.10
    confidence -= min(0.35, len(notes) * 0.05)
    return max(0.05, min(0.99, round(confidence, 2)))


def build_command(text: str, action: CommandAction, table_name: str, catalog: SchemaCatalog, notes: List[str]) -> Dict[str, Any]:
    """Assemble the raw command for an inferred action"""
    if action == "query":
        command: Dict[str, Any] = {
            "kind": "query",
            "table": table_name,
            "filters": parse_where_filters(text, table_name, catalog, notes),
            "sort": parse_sort(text, table_name, catalog),
        }
        limit = parse_limit(text)
        if limit is not None:
            command["limit"] = limit
        select = parse_select(text, table_name, catalog, notes)
        if select is not None:
            command["select"] = select
        return command

    if action == "insert":
        return {
            "kind": "mutate",
            "action": "insert",
            "table": table_name,
            "values": parse_assignments(text, table_name, catalog, notes),
            "filters": [],
            "returning": ["id"],
        }

    if action == "update":
        values = parse_assignments(extract_set_segment(text), table_name, catalog, notes)
        filters = parse_where_filters(text, table_name, catalog, notes)
        if not filters:
            notes.append("No WHERE clause detected for update; executor may reject unsafe mutation.")
        return {
            "kind": "mutate",
            "action": "update",
            "table": table_name,
            "values": values,
            "filters": filters,
            "returning": ["id"],
        }

    filters = parse_where_filters(text, table_name, catalog, notes)
    if not filters:
        notes.append("No WHERE clause detected for delete; executor may reject unsafe mutation.")
    return {
        "kind": "mutate",
        "action": "delete",
        "table": table_name,
        "filters": filters,
        "returning": ["id"],
    }


def unsafe_identifiers(command) -> List[str]:
    """Messages for every table or column name that may not be spliced into SQL"""
    problems: List[str] = []
    for leaf in iter_commands(command):
        names = [leaf.table] + [f.column for f in leaf.filters]
        if isinstance(leaf, QueryCommand):
            names += [s.column for s in leaf.sort] + (leaf.select or [])
        else:
            names += list(leaf.values or {}) + (leaf.returning or [])

        for name in names:
            try:
                assert_safe_identifier(name)
            except ValueError as e:
                if str(e) not in problems:
                    problems.append(str(e))
    return problems


class Translator:
    """Best-effort natural-language to request-envelope translator bound to one schema catalog"""

    def __init__(self, catalog: SchemaCatalog):
        self.catalog = catalog

    def translate(self, payload: Union[TranslationRequest, Dict[str, Any]]) -> TranslationResult:
        """
        Translate one sentence into a validated request envelope

        Never raises for user input: bad payloads, unknown tables and commands
        that fail contract validation all come back as ``success=False``.
        """
        try:
            parsed = payload if isinstance(payload, TranslationRequest) else TranslationRequest.model_validate(payload)
        except ValidationError as e:
            return TranslationResult(
                success=False,
                confidence=0.05,
                inferred=InferredIntent(action="query"),
                error=TranslationError(
                    message="Invalid translation request payload.",
                    suggestions=[str(e)],
                ),
            )

        notes: List[str] = []
        options = parsed.options
        action: CommandAction = (options.force_action if options else None) or infer_action(parsed.input)

        if options and options.force_table is not None:
            table_name = self.catalog.resolve_table_name(options.force_table)
        else:
            table_name = infer_table_name(parsed.input, self.catalog)

        if not table_name:
            suggestions = self.catalog.detect_tables_in_text(parsed.input, MAX_SUGGESTIONS)
            logger.info(f"Translation failed - no table inferred for: {parsed.input!r}")
            return TranslationResult(
                success=False,
                confidence=compute_confidence(action, None, notes),
                notes=notes,
                inferred=InferredIntent(action=action),
                error=TranslationError(
                    message="Could not infer target table from natural-language input.",
                    suggestions=suggestions,
                ),
            )

        if not self.catalog.has_table(table_name):
            return TranslationResult(
                success=False,
                confidence=compute_confidence(action, None, notes),
                notes=notes,
                inferred=InferredIntent(action=action, table=table_name),
                error=TranslationError(
                    message=f'Inferred table "{table_name}" is not present in the active schema catalog.',
                ),
            )

        command = build_command(parsed.input, action, table_name, self.catalog, notes)

        try:
            request = validate_request({
                "requestId": str(uuid.uuid4()),
                "dryRun": parsed.dry_run,
                "scope": parsed.scope.model_dump(by_alias=True, exclude_none=True),
                "command": command,
            })
        except ContractValidationError as e:
            logger.warning(f"Translated command for {table_name} failed contract validation: {e.message}")
            return TranslationResult(
                success=False,
                confidence=compute_confidence(action, table_name, notes),
                notes=notes,
                inferred=InferredIntent(action=action, table=table_name),
                error=TranslationError(
                    message="Translated command failed contract validation.",
                    suggestions=list(e.details or []),
                ),
            )

        unsafe = unsafe_identifiers(request.command)
        if unsafe:
            logger.warning(f"Translated command for {table_name} rejected: {'; '.join(unsafe)}")
            return TranslationResult(
                success=False,
                confidence=compute_confidence(action, table_name, notes),
                notes=notes,
                inferred=InferredIntent(action=action, table=table_name),
                error=TranslationError(message=unsafe[0], suggestions=unsafe),
            )

        confidence = compute_confidence(action, table_name, notes)
        tables = ", ".join(command_tables(request.command))
        logger.info(f"Translated {command_action(request.command)} on {tables} (confidence {confidence}, {len(notes)} notes)")

        return TranslationResult(
            success=True,
            confidence=confidence,
            notes=notes,
            inferred=InferredIntent(action=action, table=table_name),
            request=request,
        )
