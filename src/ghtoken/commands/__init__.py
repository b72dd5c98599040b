"""CLI sub-command groups registered on the root Typer app."""
