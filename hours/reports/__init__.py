"""Report, log and stats output."""
