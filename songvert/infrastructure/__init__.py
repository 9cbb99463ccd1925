"""Adapters for external services, files and the command line."""
