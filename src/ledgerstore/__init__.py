"""
ledgerstore

Data-access adapter for Amazon QLDB ledger tables: CRUD-style repository
operations over PartiQL, with results normalized into plain Python structures.

Modules are imported directly (ledgerstore.repository, ledgerstore.datasource)
so that configuration is not loaded until it is first needed.
"""
