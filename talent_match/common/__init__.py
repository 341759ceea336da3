"""Shared infrastructure: configuration, logging, errors, retry and storage."""
