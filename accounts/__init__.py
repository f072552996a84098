"""Accounts: user account lifecycle service.

The core package holds the domain model, ports and use-case services;
the adapters package holds storage, REST and CLI implementations.
Wiring happens only in accounts.main.
"""
