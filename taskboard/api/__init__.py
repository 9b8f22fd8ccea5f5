"""FastAPI application exposing the board operations."""
