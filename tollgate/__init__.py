"""Tollgate: a scoped credential broker for GitHub App installations."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
