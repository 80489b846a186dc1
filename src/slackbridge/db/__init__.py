"""SQLite persistence for bridged rooms and events."""
