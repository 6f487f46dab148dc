"""Shared helpers: paths, config, ids, timestamps."""
