"""Repository interface, SQLite adapter and device-local state."""
