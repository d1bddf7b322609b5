"""Core time tracking service for hours."""
