"""Test suite for the accounts service.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - Minimal dependencies, fast execution
   - Uses in-memory fakes for ports

2. adapters/: Integration tests for adapter implementations
   - Tests against real (SQLite) or mocked (PostgreSQL) backends
   - Validates adapter behavior and error handling

3. fakes/: Port implementations for testing
   - Call-recording, failure-injecting UserRepositoryPort
"""
