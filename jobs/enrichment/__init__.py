"""Enrichment runner package: warms the per-node stats cache outside the API.

Modules:
- cli: CLI entry point (main)
"""

from .cli import main, run

__all__ = ["main", "run"]
