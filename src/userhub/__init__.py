"""Userhub: user lifecycle service with domain events on RabbitMQ."""

__version__ = "0.1.0"
