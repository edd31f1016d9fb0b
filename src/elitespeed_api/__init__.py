"""Shared EliteSpeed carrier package (API client, status vocabulary, config, logging)."""
