"""Command-line interface for walletsync."""
