"""dayforge: calendar day planning and travel-block synchronization."""

__version__ = "0.3.0"
