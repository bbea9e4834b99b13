"""Command line interface for realtalk."""
