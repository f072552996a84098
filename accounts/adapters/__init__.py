"""External adapters for the accounts service.

This package contains all external dependencies (SQLite, PostgreSQL,
HTTP servers, etc.) and provides implementations of the core port
interfaces.

Adapter Organization:

- store/: Adapters for user persistence (in-memory, SQLite, PostgreSQL)
- rest/: aiohttp REST transport for the account use cases
- cli/: Interactive command-line management
"""
