"""Shared infrastructure: config, events, exceptions and utilities."""
