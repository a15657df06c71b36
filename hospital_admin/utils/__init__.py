"""Shared helpers: configuration and time handling."""
