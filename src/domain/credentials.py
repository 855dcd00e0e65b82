"""
Credential primitives - OTP codes and password hashing.

OTP codes are short, so they are stored as a SHA-256 digest and compared
in constant time. Passwords use bcrypt with a configurable cost factor.
Token signing lives behind the TokenService port (see adapters.tokens).
"""

import hashlib
import re
import secrets

import bcrypt

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt input limit
DEFAULT_BCRYPT_ROUNDS = 10

_SPECIAL_CHARACTERS = re.compile(r"[^A-Za-z0-9]")


def generate_otp_code(length: int = 6) -> str:
    """
    Generate a cryptographically random numeric code.

    Returns a string to preserve leading zeros.
    """
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_otp_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


def verify_otp_code(candidate: str, stored_hash: str) -> bool:
    """Compare a candidate code against a stored digest in constant time."""
    return secrets.compare_digest(hash_otp_code(candidate).encode(), stored_hash.encode())


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(candidate: str, stored_hash: str) -> bool:
    """Check a plaintext against a bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(candidate.encode(), stored_hash.encode())
    except ValueError:
        return False


def check_password_policy(password: str) -> list[str]:
    """
    Evaluate a password against the password policy.

    Returns:
        Human-readable list of unmet rules; empty when the password is acceptable
    """
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        problems.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    if not _SPECIAL_CHARACTERS.search(password):
        problems.append("Password must contain at least one special character")
    return problems
