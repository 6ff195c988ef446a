"""Key/value store adapters backing the record store.

Implementations:
- SQLite (zero-config, single-file)
"""
