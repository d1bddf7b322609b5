"""Command line interface for hours."""
