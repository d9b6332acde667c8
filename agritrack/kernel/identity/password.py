"""
Password hashing for stored credentials.

bcrypt at cost 10. bcrypt only looks at the first 72 bytes of its input, so
passwords are cut there both when hashing and when verifying.
"""

import asyncio

import bcrypt

BCRYPT_ROUNDS = 10
BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """bcrypt hasher with a fixed cost per instance."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_encode(password), salt).decode("ascii")

    def verify(self, password: str, stored_hash: str) -> bool:
        """
        Check a plain password against a stored hash.

        A stored value that is not a bcrypt hash never matches.
        """
        try:
            return bcrypt.checkpw(_encode(password), stored_hash.encode("ascii"))
        except ValueError:
            return False


_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    return _hasher.verify(password, stored_hash)


# bcrypt is CPU-bound; these keep it off the event loop
async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(_hasher.hash, password)


async def verify_password_async(password: str, stored_hash: str) -> bool:
    return await asyncio.to_thread(_hasher.verify, password, stored_hash)
