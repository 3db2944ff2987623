"""Shared helpers."""

from .identifiers import make_id

__all__ = ["make_id"]
