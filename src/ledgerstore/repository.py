import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ledgerstore.codec import normalize, to_parameter
from ledgerstore.errors import MissingIdError, UpsertConflictError
from ledgerstore.query import (
    Operator,
    StatementBuilder,
    clause_values,
    split_clauses,
    split_fields,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stamp_timestamps(document: dict, now: datetime, on_insert: bool) -> dict:
    """
    Return a copy of the document with its timestamps filled in.

    On insert, createdAt defaults to now and updatedAt to createdAt. On update
    only updatedAt is defaulted. Values already present are kept.
    """
    stamped = dict(document)
    if on_insert:
        if stamped.get("createdAt") is None:
            stamped["createdAt"] = now
        if stamped.get("updatedAt") is None:
            stamped["updatedAt"] = stamped["createdAt"]
    elif stamped.get("updatedAt") is None:
        stamped["updatedAt"] = now
    return stamped


class LedgerRepository:
    """
    Repository for document access on a single ledger table.

    Every method takes an already-open transactional executor (the `txn`
    handed to QldbDriver.execute_lambda) and holds no state between calls.
    Results are normalized into plain dicts and lists.
    """

    def __init__(
        self,
        table: str,
        id_field_name: str = "_id",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.statements = StatementBuilder(table, id_field_name)
        self.clock = clock or utcnow

    @property
    def table(self) -> str:
        return self.statements.table

    @property
    def id_field_name(self) -> str:
        return self.statements.id_field_name

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def all(self, txn) -> list[dict]:
        """Return every document in the table."""
        return normalize(self.execute(txn, self.statements.select_all()))

    def find(self, txn, id: str) -> Optional[dict]:
        """Get a document by its id field."""
        return self.find_by(txn, {self.id_field_name: id})

    def find_by(self, txn, where: dict) -> Optional[dict]:
        """Get the first document matching the predicate."""
        results = self.where(txn, where)
        return results[0] if results else None

    def where(self, txn, where: dict) -> list[dict]:
        """Return all documents matching the predicate. An empty predicate matches all."""
        clauses = split_clauses(where)
        rows = self.execute(txn, self.statements.select_where(clauses), *clause_values(clauses))
        return normalize(rows)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, txn, document: dict) -> Optional[dict]:
        """
        Insert a document and return it as stored.

        The document is re-read by the id the ledger assigned to it. If the
        insert result carries no id, MissingIdError is raised even though the
        document may already be written.
        """
        document = stamp_timestamps(document, self.clock(), on_insert=True)
        results = self.execute(txn, self.statements.insert(), document)
        return self.find(txn, self._generated_id(results))

    def insert_into(self, txn, field: str, document: dict, where: dict) -> Optional[dict]:
        """Append a value into a nested field of the document matching the predicate."""
        clauses = split_clauses(where)
        results = self.execute(
            txn,
            self.statements.insert_into(field, clauses),
            *clause_values(clauses),
            document,
        )
        return self.find(txn, self._generated_id(results))

    def update(self, txn, document: dict, where: dict) -> list[dict]:
        """Set the document's fields on every row matching the predicate."""
        document = stamp_timestamps(document, self.clock(), on_insert=False)
        fields, values = split_fields(document)
        clauses = split_clauses(where)

        statement = self.statements.update(fields, clauses)
        return normalize(self.execute(txn, statement, *values, *clause_values(clauses)))

    def upsert(self, txn, document: dict, where: dict) -> Optional[dict]:
        """
        Update the single document matching the predicate, or insert one.

        Raises UpsertConflictError without writing anything if more than one
        document matches. On insert, equality terms of the predicate (other
        than the ledger-assigned id) are merged under the document so the new
        row satisfies the predicate.
        """
        existing = self.where(txn, where)

        if len(existing) == 0:
            logger.debug("Upsert on %s matched nothing; inserting", self.table)
            return self.insert(txn, self._merge_predicate(document, where))
        if len(existing) == 1:
            logger.debug("Upsert on %s matched one document; updating", self.table)
            results = self.update(txn, document, where)
            return results[0] if results else None

        raise UpsertConflictError(where, len(existing))

    def delete(self, txn, where: dict) -> list[dict]:
        """Delete every row matching the predicate."""
        clauses = split_clauses(where)
        return normalize(
            self.execute(txn, self.statements.delete(clauses), *clause_values(clauses))
        )

    # -------------------------------------------------------------------------
    # Id-scoped wrappers
    # -------------------------------------------------------------------------

    def by_id(self, id: str) -> dict:
        return {self.id_field_name: id}

    def update_by_id(self, txn, document: dict, id: str) -> list[dict]:
        return self.update(txn, document, self.by_id(id))

    def upsert_by_id(self, txn, document: dict, id: str) -> Optional[dict]:
        return self.upsert(txn, document, self.by_id(id))

    def insert_into_by_id(self, txn, field: str, document: dict, id: str) -> Optional[dict]:
        return self.insert_into(txn, field, document, self.by_id(id))

    def delete_by_id(self, txn, id: str) -> list[dict]:
        return self.delete(txn, self.by_id(id))

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self, txn, statement: str, *params: Any) -> list:
        """Run one statement and return its raw Ion result rows."""
        params = [to_parameter(param) for param in params]
        logger.info("Query %s with %s", statement, params)
        return list(txn.execute_statement(statement, *params))

    def _generated_id(self, results: list) -> str:
        row = normalize(results[0]) if results else None
        id = row.get(self.id_field_name) if isinstance(row, dict) else None
        if id is None:
            raise MissingIdError(self.table, self.id_field_name)
        return str(id)

    def _merge_predicate(self, document: dict, where: dict) -> dict:
        # Dotted paths and membership terms have no single value to store
        merged = {
            clause.field: clause.value
            for clause in split_clauses(where)
            if clause.operator is Operator.EQUALS
            and clause.field != self.id_field_name
            and "." not in clause.field
        }
        merged.update(document)
        return merged
