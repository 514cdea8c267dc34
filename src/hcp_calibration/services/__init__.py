"""Logging and settings services."""
