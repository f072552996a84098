"""User repository adapters for persistence and querying.

Implementations support multiple backends:
- In-memory (reference implementation, tests)
- SQLite (zero-config, single-file)
- PostgreSQL (distributed, scalable)
"""
