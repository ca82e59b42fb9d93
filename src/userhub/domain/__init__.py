"""Userhub domain packages."""
