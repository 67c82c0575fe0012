"""Core configuration, logging and caching."""
