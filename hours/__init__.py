"""
hours: terminal-based personal time tracking.

Tasks, task log entries and reports backed by a single local SQLite file.
"""

__version__ = "0.5.0"
