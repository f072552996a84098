"""CLI adapter for interactive account management."""
