"""Userhub infrastructure adapters (persistence, messaging, security, transport)."""
