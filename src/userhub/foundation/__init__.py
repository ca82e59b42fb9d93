"""Userhub foundation layer: framework-free domain and application primitives."""
