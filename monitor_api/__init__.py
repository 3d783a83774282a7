"""pNode monitor API: discovery, cache and analytics for the storage network."""

__version__ = "0.4.0"
