"""Command-line entry points (mining-monitor console script)."""
