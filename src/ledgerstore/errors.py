"""
Exceptions raised by the ledger data-access layer.

Driver and transport failures raised by pyqldb/botocore are not wrapped;
they propagate to the caller unchanged.
"""


class LedgerStoreError(Exception):
    """Base class for all ledgerstore errors."""


class ConfigurationError(LedgerStoreError):
    """A required connection parameter or payload key is missing."""


class EmptyPredicateError(LedgerStoreError, ValueError):
    """A mutating statement was requested without any predicate clauses."""


class UpsertConflictError(LedgerStoreError):
    """An upsert predicate matched more than one document."""

    def __init__(self, predicate: dict, count: int):
        self.predicate = predicate
        self.count = count
        super().__init__(
            f"Upsert matched multiple documents; searching for {predicate!r}, "
            f"found {count} documents"
        )


class MissingIdError(LedgerStoreError):
    """
    A write result did not expose the id field needed to re-read the row.

    The row may already be persisted when this is raised.
    """

    def __init__(self, table: str, id_field_name: str):
        self.table = table
        self.id_field_name = id_field_name
        super().__init__(
            f"Write to {table} did not return the id field {id_field_name!r}; "
            "the document may have been persisted"
        )
