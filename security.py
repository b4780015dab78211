# security.py
"""Password hashing, shared by login/register and admin invites."""

import secrets

import bcrypt

import config


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed hash, or a password bcrypt refuses (> 72 bytes)
        return False


def temporary_password() -> str:
    """Random password for invited accounts, well under bcrypt's 72-byte limit."""
    return secrets.token_urlsafe(12)
