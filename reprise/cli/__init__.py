"""Reprise command-line interface (Typer)."""
