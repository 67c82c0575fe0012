"""Inventory engine services."""
