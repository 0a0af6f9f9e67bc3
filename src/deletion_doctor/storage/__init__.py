"""SQLite-backed adapters for the record store, task queue and notification sink."""
