"""CLI (Typer + Rich): capa de presentación delgada sobre el Core."""
