"""
Tests for LedgerDatasource host operations.

Run with: pytest src/ledgerstore/datasource_test.py -v
"""

from unittest.mock import MagicMock, patch

import pytest

from ledgerstore import db
from ledgerstore.config import Config
from ledgerstore.datasource import LedgerDatasource
from ledgerstore.errors import ConfigurationError, EmptyPredicateError, UpsertConflictError

ANN = '{documentId: "abc", name: "Ann"}'


class TestCreate:
    """Tests for LedgerDatasource.create()"""

    def test_create_inserts_and_returns_document(self, datasource, driver, txn):
        txn.respond('{documentId: "abc"}', ANN)

        result = datasource.create({"json": {"name": "Ann"}})

        assert result == {"documentId": "abc", "name": "Ann"}
        assert driver.transactions == 1
        (inserted,) = txn.executed[0][1]
        assert inserted["name"] == "Ann"
        assert inserted["createdAt"] == inserted["updatedAt"]

    def test_create_requires_document(self, datasource, driver):
        with pytest.raises(ConfigurationError, match="document"):
            datasource.create({})

        assert driver.transactions == 0

    def test_create_rejects_non_object(self, datasource):
        with pytest.raises(ConfigurationError, match="must be an object"):
            datasource.create({"json": ["not", "a", "document"]})


class TestRead:
    """Tests for LedgerDatasource.read() and read_by_id()"""

    def test_read(self, datasource, txn):
        txn.respond(ANN)

        assert datasource.read({"json": {"name": "Ann"}}) == [{"documentId": "abc", "name": "Ann"}]
        assert txn.executed[0][1] == ("Ann",)

    def test_read_without_predicate_returns_all(self, datasource, txn):
        datasource.read({})

        assert txn.statements == ["SELECT * FROM people BY documentId;"]

    def test_read_by_id(self, datasource, txn):
        txn.respond(ANN)

        assert datasource.read_by_id({"id": "abc"})["name"] == "Ann"
        assert txn.executed[0][1] == ("abc",)

    def test_read_by_id_missing(self, datasource):
        assert datasource.read_by_id({"id": "nope"}) is None

    def test_read_by_id_requires_id(self, datasource):
        with pytest.raises(ConfigurationError, match="'id'"):
            datasource.read_by_id({})


class TestMutations:
    """Tests for update, upsert, insert_into and delete operations"""

    def test_update(self, datasource, txn):
        txn.respond('{documentId: "abc"}')

        result = datasource.update({"document": {"name": "Annie"}, "where": {"name": "Ann"}})

        assert result == [{"documentId": "abc"}]
        assert txn.statements[0].startswith("UPDATE people BY documentId")

    def test_update_with_empty_where_raises(self, datasource, txn):
        with pytest.raises(EmptyPredicateError):
            datasource.update({"document": {"name": "Annie"}, "where": {}})

        assert txn.executed == []

    def test_update_by_id(self, datasource, txn):
        datasource.update_by_id({"document": {"name": "Annie"}, "id": "abc"})

        statement, params = txn.executed[0]
        assert statement.endswith('WHERE "documentId" = ?;')
        assert params[0] == "Annie"
        assert params[-1] == "abc"

    def test_upsert_conflict(self, datasource, txn):
        txn.respond('{documentId: "a"} {documentId: "b"}')

        with pytest.raises(UpsertConflictError):
            datasource.upsert({"document": {"status": "x"}, "where": {"name": "Ann"}})

    def test_insert_into(self, datasource, txn):
        txn.respond('{documentId: "abc"}', ANN)

        result = datasource.insert_into(
            {"field": "emails", "document": {"email": "a@b.c"}, "where": {"name": "Ann"}}
        )

        assert result["documentId"] == "abc"
        assert 'INSERT INTO t."emails" VALUE ?' in txn.statements[0]

    def test_insert_into_by_id(self, datasource, txn):
        txn.respond('{documentId: "abc"}', ANN)

        datasource.insert_into_by_id({"field": "emails", "document": {"email": "a@b.c"}, "id": "abc"})

        assert txn.executed[0][1] == ("abc", {"email": "a@b.c"})

    def test_insert_into_requires_field(self, datasource):
        with pytest.raises(ConfigurationError, match="'field'"):
            datasource.insert_into({"document": {"email": "a@b.c"}, "where": {"name": "Ann"}})

    def test_delete(self, datasource, txn):
        txn.respond('{documentId: "abc"}')

        assert datasource.delete({"json": {"name": "Ann"}}) == [{"documentId": "abc"}]

    def test_delete_by_id(self, datasource, txn):
        datasource.delete_by_id({"id": "abc"})

        assert txn.executed == [
            ('DELETE FROM people BY documentId WHERE "documentId" = ?;', ("abc",))
        ]


class TestConfiguration:
    """Tests for table selection and connection configuration"""

    def test_table_override_uses_cached_repository(self, datasource, txn):
        datasource.read({"table": "accounts"})
        datasource.read({"table": "accounts"})

        assert txn.statements == ["SELECT * FROM accounts BY documentId;"] * 2
        assert datasource.repository("accounts") is datasource.repository("accounts")
        assert datasource.repository() is not datasource.repository("accounts")

    def test_id_field_override(self, driver, txn):
        datasource = LedgerDatasource({"table": "people", "idFieldName": "personId"})

        datasource.read_by_id({"id": "p1"})

        assert txn.statements == ['SELECT * FROM people BY personId WHERE "personId" = ?;']

    def test_missing_ledger_fails_before_driver(self):
        provider = MagicMock()
        settings = Config(environment="test", region="us-east-1", ledger=None, table="people")
        datasource = LedgerDatasource(settings, provider=provider)

        with pytest.raises(ConfigurationError, match="Ledger"):
            datasource.read({})

        provider.get.assert_not_called()

    def test_missing_region_fails_before_driver(self):
        provider = MagicMock()
        settings = Config(environment="test", region=None, ledger="ledger", table="people")
        datasource = LedgerDatasource(settings, provider=provider)

        with pytest.raises(ConfigurationError, match="region"):
            datasource.read({})

        provider.get.assert_not_called()

    def test_missing_table_raises(self, driver):
        settings = Config(environment="test", region="us-east-1", ledger="ledger", table=None)

        with pytest.raises(ConfigurationError, match="table"):
            LedgerDatasource(settings).read({})

    def test_uses_injected_provider(self, txn):
        from ledgerstore.conftest import FakeDriver

        provider = MagicMock()
        provider.get.return_value = FakeDriver(txn)
        datasource = LedgerDatasource(
            {
                "region": "eu-west-2",
                "ledger": "books",
                "table": "people",
                "retryLimit": 3,
                "maxConcurrentTransactions": 5,
            },
            provider=provider,
        )

        datasource.read({})

        provider.get.assert_called_once_with(
            "books", "eu-west-2", db.DriverOptions(max_concurrent_transactions=5, retry_limit=3)
        )

    def test_host_driver_options_reach_driver(self):
        datasource = LedgerDatasource(
            {
                "region": "us-east-1",
                "ledger": "books",
                "table": "people",
                "retryLimit": 1,
                "maxConcurrentTransactions": 2,
            },
            provider=db.DriverProvider(),
        )

        with patch("ledgerstore.db.QldbDriver") as driver_class:
            datasource.driver

        kwargs = driver_class.call_args.kwargs
        assert kwargs["retry_config"].retry_limit == 1
        assert kwargs["max_concurrent_transactions"] == 2
        assert kwargs["config"].max_pool_connections == 2
