"""Keyed hash implementations for the session handshake."""
