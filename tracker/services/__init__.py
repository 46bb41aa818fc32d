"""Engines, local store and sync client, plus the server persistence service."""
