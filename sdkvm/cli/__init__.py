"""Command-line interface for sdkvm."""
