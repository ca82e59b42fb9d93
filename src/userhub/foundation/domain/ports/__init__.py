"""Domain port interfaces for hexagonal architecture.

Ports define abstract interfaces that the domain layer uses to interact
with external services. Implementations (adapters) live in infrastructure.
"""

from userhub.foundation.domain.ports.password_hasher import PasswordHasherPort

__all__ = ["PasswordHasherPort"]
