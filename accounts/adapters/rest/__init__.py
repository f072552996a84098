"""REST transport adapters.

Exposes the account use cases over HTTP using aiohttp:
- receiver: payload → use case → JSON-compatible dict
- http_server: routing, status codes, error mapping
"""
