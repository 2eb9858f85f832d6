# backend/smartwork/core/security.py

import base64
import binascii
import hmac
from typing import Optional

from passlib.context import CryptContext
from passlib.crypto.digest import pbkdf2_hmac
from passlib.pwd import genword

# ONLY pbkdf2_sha256 for new hashes (16-byte salt, 32-byte key)
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__default_rounds=29000,
)

# Records written by the previous backend: base64(salt[16] + key[32]),
# PBKDF2-HMAC-SHA256 at a fixed 10,000 rounds.
LEGACY_SALT_SIZE = 16
LEGACY_KEY_SIZE = 32
LEGACY_ROUNDS = 10000

# no 0/O, 1/l/I
TEMP_PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz23456789"


def hash_password(password: str) -> str:
    return pwd_context.hash(password or "")


def _verify_legacy_record(record: str, password: str) -> bool:
    try:
        raw = base64.b64decode(record, validate=True)
    except (binascii.Error, ValueError):
        return False

    if len(raw) != LEGACY_SALT_SIZE + LEGACY_KEY_SIZE:
        return False

    salt, expected = raw[:LEGACY_SALT_SIZE], raw[LEGACY_SALT_SIZE:]
    derived = pbkdf2_hmac("sha256", password.encode("utf-8"), salt, LEGACY_ROUNDS, LEGACY_KEY_SIZE)
    return hmac.compare_digest(derived, expected)


def verify_password(password: str, hash_record: Optional[str]) -> bool:
    """
    Check ``password`` against a stored hash record.

    Accepts both passlib ``$pbkdf2-sha256$`` records and the older bare
    base64 salt+key records. Never raises: anything malformed is a mismatch.
    """
    if not hash_record:
        return False

    s = str(hash_record).strip()
    password = password or ""

    if s.startswith("$pbkdf2-sha256$"):
        try:
            return pwd_context.verify(password, s)
        except (ValueError, TypeError):
            return False

    return _verify_legacy_record(s, password)


def generate_temporary_password(length: int = 10) -> str:
    if length <= 0:
        raise ValueError("length must be positive")
    # genword draws from SystemRandom
    return genword(length=length, chars=TEMP_PASSWORD_ALPHABET)
