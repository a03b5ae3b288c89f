"""Argon2 password hashing used for account credentials."""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2 import exceptions as argon_exc

from ..config import Settings, get_settings
from ..domain.errors import InfrastructureError


class Argon2PasswordHasher:
    """One-way credential hashing backed by argon2-cffi."""

    def __init__(self, *, time_cost: int, memory_cost: int, parallelism: int) -> None:
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Argon2PasswordHasher":
        """Build a hasher using the Argon2 cost parameters from configuration."""
        settings = settings or get_settings()
        return cls(
            time_cost=settings.argon2_time_cost,
            memory_cost=settings.argon2_memory_cost,
            parallelism=settings.argon2_parallelism,
        )

    def hash(self, plaintext: str) -> str:
        """Return an encoded Argon2id hash for ``plaintext``."""
        try:
            return self._hasher.hash(plaintext)
        except argon_exc.HashingError as exc:
            raise InfrastructureError("password hashing failed") from exc

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return ``True`` when ``plaintext`` matches the stored ``hashed`` value.

        Malformed stored hashes are treated as a mismatch.
        """
        if not hashed:
            return False
        try:
            return self._hasher.verify(hashed, plaintext)
        except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
            return False
