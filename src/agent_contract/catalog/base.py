"""
Schema catalog models - runtime dictionary of the tables and columns that exist
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import Field

from agent_contract.models.base import ContractModel

SAFE_IDENTIFIER = re.compile(r"^[a-z][a-z0-9_]*$")


class CatalogColumn(ContractModel):
    """Column metadata"""
    name: str
    sql_type: str = "text"
    not_null: bool = False
    primary_key: bool = False


class CatalogTable(ContractModel):
    """Table metadata"""
    name: str
    columns: List[CatalogColumn] = Field(default_factory=list)
    primary_keys: List[str] = Field(default_factory=list)
    has_biz_id: bool = False

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def get_column(self, column_name: str) -> Optional[CatalogColumn]:
        """Get column definition by name"""
        return next((c for c in self.columns if c.name == column_name), None)

    def has_column(self, column_name: str) -> bool:
        return self.get_column(column_name) is not None


def normalize_key(value: str) -> str:
    return re.sub(r"\s+", " ", value.strip().lower())


def normalize_db_identifier(value: str) -> str:
    return re.sub(r"[\s-]+", "_", value.strip().lower())


def to_singular(name: str) -> str:
    if name.endswith("ies") and len(name) > 3:
        return f"{name[:-3]}y"
    if name.endswith("s") and len(name) > 1:
        return name[:-1]
    return name


def camel_to_snake(value: str) -> str:
    return re.sub(r"[A-Z]", lambda m: f"_{m.group(0).lower()}", value).lstrip("_").lower()


def assert_safe_identifier(identifier: str) -> None:
    """Only lowercase snake_case identifiers ever reach SQL"""
    if not SAFE_IDENTIFIER.match(identifier):
        raise ValueError(f"Unsafe SQL identifier: {identifier}")


class SchemaCatalog:
    """Tables plus the natural-language aliases that point at them"""

    def __init__(self, tables: Iterable[CatalogTable], generated_at: Optional[str] = None):
        self.generated_at = generated_at or datetime.now(timezone.utc).isoformat()
        self.tables: Dict[str, CatalogTable] = {}
        self.aliases: Dict[str, str] = {}

        for table in tables:
            if table.name in self.tables:
                continue
            self.tables[table.name] = table
            self._register_aliases(table.name)

    def _add_alias(self, alias: str, table_name: str) -> None:
        normalized = normalize_key(alias)
        if normalized and normalized not in self.aliases:
            self.aliases[normalized] = table_name

    def _register_aliases(self, table_name: str) -> None:
        self._add_alias(table_name, table_name)
        self._add_alias(table_name.replace("_", " "), table_name)

        singular = to_singular(table_name)
        self._add_alias(singular, table_name)
        self._add_alias(singular.replace("_", " "), table_name)

        self._add_alias(table_name.replace("_", ""), table_name)

    @classmethod
    def from_columns(cls, tables: Mapping[str, Iterable[Union[str, CatalogColumn]]]) -> "SchemaCatalog":
        """Build a catalog from ``{table: [column, ...]}``; ``id`` is the primary key when present"""
        built = []
        for table_name, raw_columns in tables.items():
            columns = [
                c if isinstance(c, CatalogColumn) else CatalogColumn(name=c, primary_key=(c == "id"), not_null=(c == "id"))
                for c in raw_columns
            ]
            built.append(
                CatalogTable(
                    name=table_name,
                    columns=columns,
                    primary_keys=[c.name for c in columns if c.primary_key],
                    has_biz_id=any(c.name == "biz_id" for c in columns),
                )
            )
        return cls(built)

    @classmethod
    def from_serialized(cls, payload: Mapping[str, Any]) -> "SchemaCatalog":
        """Build a catalog from the ``GET /api/v1/agent/schema`` payload"""
        body = payload.get("catalog", payload)
        tables = [CatalogTable.model_validate(raw) for raw in body.get("tables", [])]
        return cls(tables, generated_at=body.get("generatedAt"))

    @property
    def table_names(self) -> List[str]:
        return list(self.tables.keys())

    @property
    def column_count(self) -> int:
        return sum(len(table.columns) for table in self.tables.values())

    def has_table(self, table_name: str) -> bool:
        return table_name in self.tables

    def resolve_table_name(self, value: str) -> Optional[str]:
        """Resolve a human or machine table name into a canonical table name"""
        normalized = normalize_key(value)
        if not normalized:
            return None

        direct = self.aliases.get(normalized)
        if direct:
            return direct

        return self.aliases.get(normalize_key(normalize_db_identifier(value)))

    def resolve_column_name(self, table_name: str, value: str) -> Optional[str]:
        """Resolve a column tolerantly (snake_case, spaces, camelCase)"""
        table = self.tables.get(table_name)
        if table is None:
            return None

        candidates = [
            normalize_db_identifier(value),
            re.sub(r"\s+", "_", value.lower()),
            camel_to_snake(value),
        ]
        for candidate in candidates:
            if table.has_column(candidate):
                return candidate
        return None

    def detect_tables_in_text(self, text: str, limit: int = 5) -> List[str]:
        """Tables whose aliases appear as whole words in ``text``, longest alias first"""
        haystack = f" {normalize_key(text)} "
        scored: Dict[str, int] = {}

        for alias, table_name in self.aliases.items():
            if not re.search(rf"(^|\s){re.escape(alias)}(\s|$)", haystack, re.IGNORECASE):
                continue
            score = len(alias)
            if score > scored.get(table_name, 0):
                scored[table_name] = score

        ranked = sorted(scored.items(), key=lambda item: item[1], reverse=True)
        return [table_name for table_name, _ in ranked[:limit]]

    def serialize(self) -> Dict[str, Any]:
        """Compact snapshot for admin tooling and the schema route"""
        return {
            "generatedAt": self.generated_at,
            "summary": {
                "tableCount": len(self.tables),
                "columnCount": self.column_count,
            },
            "tables": [
                self.tables[name].model_dump(mode="json", by_alias=True)
                for name in sorted(self.tables)
            ],
        }
