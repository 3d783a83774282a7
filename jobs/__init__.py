"""Standalone job runners."""
