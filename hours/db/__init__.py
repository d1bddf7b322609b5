"""SQLite storage for tasks and task log entries."""
