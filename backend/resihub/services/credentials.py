"""
ResiHub Backend — Credential Verifier
=======================================

What:  bcrypt hashing and verification of login passwords.
How:   `verify_password` compares a plaintext password with a stored salted
       hash; a mismatch is `False`, never an exception. A stored value that is
       not a bcrypt hash raises ValueError (malformed data).
"""

import bcrypt

# bcrypt ignores input beyond 72 bytes; recent releases reject it instead
_BCRYPT_MAX_BYTES = 72


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plaintext: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash suitable for the `password_hash` columns."""
    return bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plaintext: str, stored_hash: str) -> bool:
    """
    Check `plaintext` against `stored_hash`.

    Raises:
        ValueError: `stored_hash` is not a bcrypt hash
    """
    return bcrypt.checkpw(_encode(plaintext), stored_hash.encode("utf-8"))
