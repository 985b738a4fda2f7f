"""Ambient infrastructure: configuration, logging, coercion and errors."""
