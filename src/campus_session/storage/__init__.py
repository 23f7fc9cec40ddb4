"""Persistent client-side state: paths, settings and stored credentials."""
