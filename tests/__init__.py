"""
questlog test suite.

- tests/unit/: services and pure logic over the in-memory store
- tests/integration/: DatabaseService and SqlStore against PostgreSQL
  (testcontainers; run with ``-m database``)
"""
