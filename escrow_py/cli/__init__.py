"""escrow-py command-line tooling (typer)."""
