"""Shared logging setup and project-wide constants."""
