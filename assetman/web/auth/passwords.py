"""Password hashing via passlib."""

from __future__ import annotations

from passlib.context import CryptContext

# Salted PBKDF2-SHA256; passlib picks the per-hash salt and tracks rounds in the digest.
_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain: str) -> str:
    return _pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return _pwd_context.verify(plain, hashed)
