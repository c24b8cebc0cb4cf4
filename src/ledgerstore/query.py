"""
PartiQL statement assembly.

Predicates and documents are plain dicts. They are split into ordered field
names and positional values (field i binds parameter i), and the statements
built here only ever interpolate field names; values are always passed as
`?` parameters to the transactional executor.
"""

import re
from enum import Enum
from typing import Any, Mapping, NamedTuple, Sequence

from ledgerstore.errors import EmptyPredicateError

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,127}$")


class Operator(str, Enum):
    EQUALS = "="
    MEMBERSHIP = "IN"


class Clause(NamedTuple):
    """A single `field operator ?` predicate term with its bound value."""

    field: str
    operator: Operator
    value: Any


def split_fields(mapping: Mapping[str, Any]) -> tuple[list[str], list[Any]]:
    """Split a mapping into parallel lists of field names and values, in order."""
    fields = list(mapping.keys())
    values = [mapping[field] for field in fields]
    return fields, values


def operator_for_value(value: Any) -> Operator:
    if isinstance(value, (list, tuple, set, frozenset)):
        return Operator.MEMBERSHIP
    return Operator.EQUALS


def split_clauses(predicate: Mapping[str, Any]) -> list[Clause]:
    """Build one tagged clause per predicate entry, preserving order."""
    clauses = []
    for field, value in predicate.items():
        operator = operator_for_value(value)
        if operator is Operator.MEMBERSHIP:
            value = list(value)
        clauses.append(Clause(field, operator, value))
    return clauses


def clause_values(clauses: Sequence[Clause]) -> list[Any]:
    return [clause.value for clause in clauses]


def escape_field(field: str) -> str:
    """
    Quote each dotted segment of a field name separately.

    "address.city" -> "address"."city"
    """
    return ".".join('"' + segment.replace('"', '""') + '"' for segment in field.split("."))


def validate_identifier(name: str, kind: str) -> str:
    if not isinstance(name, str) or not IDENTIFIER.match(name):
        raise ValueError(f"Invalid {kind} name: {name!r}")
    return name


class StatementBuilder:
    """
    Renders statements for one table.

    The table and id field names are validated as plain identifiers since
    they are interpolated unquoted into the FROM ... BY clause.
    """

    def __init__(self, table: str, id_field_name: str):
        self.table = validate_identifier(table, "table")
        self.id_field_name = validate_identifier(id_field_name, "id field")

    @property
    def source(self) -> str:
        return f"{self.table} BY {self.id_field_name}"

    def join_assignments(self, fields: Sequence[str]) -> str:
        return ", ".join(f"{escape_field(field)} = ?" for field in fields)

    def join_clauses(self, clauses: Sequence[Clause]) -> str:
        return " AND ".join(
            f"{escape_field(clause.field)} {clause.operator.value} ?" for clause in clauses
        )

    def _require_clauses(self, clauses: Sequence[Clause], action: str) -> None:
        if not clauses:
            raise EmptyPredicateError(
                f"Refusing to {action} {self.table} without a predicate"
            )

    def select_all(self) -> str:
        return f"SELECT * FROM {self.source};"

    def select_where(self, clauses: Sequence[Clause]) -> str:
        # No clauses matches every document
        if not clauses:
            return self.select_all()
        return f"SELECT * FROM {self.source} WHERE {self.join_clauses(clauses)};"

    def insert(self) -> str:
        return f"INSERT INTO {self.table} VALUE ?;"

    def insert_into(self, field: str, clauses: Sequence[Clause]) -> str:
        self._require_clauses(clauses, "insert into")
        if not field:
            raise ValueError("insert_into requires a target field")
        return (
            f"FROM {self.table} AS t BY {self.id_field_name} "
            f"WHERE {self.join_clauses(clauses)} "
            f"INSERT INTO t.{escape_field(field)} VALUE ?;"
        )

    def update(self, fields: Sequence[str], clauses: Sequence[Clause]) -> str:
        if not fields:
            raise EmptyPredicateError(f"Refusing to update {self.table} with no fields")
        self._require_clauses(clauses, "update")
        return (
            f"UPDATE {self.source} "
            f"SET {self.join_assignments(fields)} "
            f"WHERE {self.join_clauses(clauses)};"
        )

    def delete(self, clauses: Sequence[Clause]) -> str:
        self._require_clauses(clauses, "delete from")
        return f"DELETE FROM {self.source} WHERE {self.join_clauses(clauses)};"
