"""SQLite persistence helpers for the build queue."""
