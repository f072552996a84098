"""Fake implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without external dependencies:

- FakeUserRepository: In-memory user persistence with call tracking
  and failure injection
- TickingClock: Deterministic timestamp source
"""

from .store import FakeUserRepository, TickingClock

__all__ = [
    "FakeUserRepository",
    "TickingClock",
]
