"""Shared helpers (logging, HTTP)."""
