"""
Host-facing datasource.

Exposes the named operations a host application calls with a query payload
(create, read, read_by_id, update, update_by_id, upsert, insert_into,
insert_into_by_id, delete, delete_by_id). Each operation runs inside one
retried ledger transaction and returns plain dicts or lists.
"""

from typing import Any, Mapping, Optional, Union

from ledgerstore import db
from ledgerstore.config import Config
from ledgerstore.errors import ConfigurationError
from ledgerstore.repository import LedgerRepository


class LedgerDatasource:
    """
    Datasource bound to one ledger and a default table.

    Payloads may carry a "table" key to address a different table of the same
    ledger; repositories are cached per table name.
    """

    def __init__(
        self,
        settings: Union[Config, Mapping[str, Any]] = None,
        provider: db.DriverProvider = None,
    ):
        if settings is None or isinstance(settings, Mapping):
            settings = Config.from_mapping(settings or {})
        self.config = settings
        self.provider = provider or db.provider
        self._repositories: dict[str, LedgerRepository] = {}

    @property
    def driver(self):
        ledger, region = self.config.require_connection()
        options = db.DriverOptions(
            max_concurrent_transactions=self.config.max_concurrent_transactions,
            retry_limit=self.config.retry_limit,
        )
        return self.provider.get(ledger, region, options)

    def repository(self, table: Optional[str] = None) -> LedgerRepository:
        """Get the (cached) repository for a table, defaulting to the configured one."""
        table = table or self.config.table
        if not table:
            raise ConfigurationError("No table configured and none given in the query")
        if table not in self._repositories:
            self._repositories[table] = LedgerRepository(
                table, id_field_name=self.config.id_field_name
            )
        return self._repositories[table]

    def _run(self, query: Mapping[str, Any], operation):
        # Resolve the repository outside the transaction so config errors
        # surface before any ledger call is made.
        repository = self.repository(query.get("table"))
        driver = self.driver
        return db.run_in_transaction(driver, lambda txn: operation(repository, txn))

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(self, query: Mapping[str, Any]) -> Optional[dict]:
        document = _document(query, "json")
        return self._run(query, lambda repo, txn: repo.insert(txn, document))

    def read(self, query: Mapping[str, Any]) -> list[dict]:
        where = _where(query, "json", required=False)
        return self._run(query, lambda repo, txn: repo.where(txn, where))

    def read_by_id(self, query: Mapping[str, Any]) -> Optional[dict]:
        id = _required(query, "id")
        return self._run(query, lambda repo, txn: repo.find(txn, id))

    def update(self, query: Mapping[str, Any]) -> list[dict]:
        document = _document(query)
        where = _where(query)
        return self._run(query, lambda repo, txn: repo.update(txn, document, where))

    def update_by_id(self, query: Mapping[str, Any]) -> list[dict]:
        document = _document(query)
        id = _required(query, "id")
        return self._run(query, lambda repo, txn: repo.update_by_id(txn, document, id))

    def upsert(self, query: Mapping[str, Any]) -> Optional[dict]:
        document = _document(query)
        where = _where(query)
        return self._run(query, lambda repo, txn: repo.upsert(txn, document, where))

    def insert_into(self, query: Mapping[str, Any]) -> Optional[dict]:
        field = _required(query, "field")
        document = _document(query)
        where = _where(query)
        return self._run(
            query, lambda repo, txn: repo.insert_into(txn, field, document, where)
        )

    def insert_into_by_id(self, query: Mapping[str, Any]) -> Optional[dict]:
        field = _required(query, "field")
        document = _document(query)
        id = _required(query, "id")
        return self._run(
            query, lambda repo, txn: repo.insert_into_by_id(txn, field, document, id)
        )

    def delete(self, query: Mapping[str, Any]) -> list[dict]:
        where = _where(query, "json")
        return self._run(query, lambda repo, txn: repo.delete(txn, where))

    def delete_by_id(self, query: Mapping[str, Any]) -> list[dict]:
        id = _required(query, "id")
        return self._run(query, lambda repo, txn: repo.delete_by_id(txn, id))


# =============================================================================
# Payload helpers
# =============================================================================


def _required(query: Mapping[str, Any], key: str) -> Any:
    value = query.get(key)
    if value in (None, ""):
        raise ConfigurationError(f"Query is missing required key {key!r}")
    return value


def _mapping(query: Mapping[str, Any], keys: tuple, required: bool) -> dict:
    for key in keys:
        value = query.get(key)
        if value is None:
            continue
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"Query key {key!r} must be an object")
        return dict(value)
    if required:
        raise ConfigurationError(f"Query is missing required key {keys[0]!r}")
    return {}


def _document(query: Mapping[str, Any], *aliases: str) -> dict:
    return _mapping(query, ("document", *aliases), required=True)


def _where(query: Mapping[str, Any], *aliases: str, required: bool = True) -> dict:
    return _mapping(query, ("where", *aliases), required=required)
