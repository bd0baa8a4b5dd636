"""Command-line entry point for inherit-cwd."""
