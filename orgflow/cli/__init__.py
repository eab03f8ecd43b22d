"""Command-line interface for orgflow."""
