"""Command implementations, one module per top-level command."""
