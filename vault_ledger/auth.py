"""
Authentication Primitives Module

Password policy, salted scrypt password hashing and signed session tokens
(HS256 JWT). The user manager combines these into register/login/authenticate.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import List, Optional, Tuple
import hashlib
import hmac
import re
import secrets

import jwt

from .errors import Unauthorized


SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"


@dataclass
class PasswordPolicy:
    """Password strength policy"""
    min_length: int = 6
    require_letter: bool = True
    require_digit: bool = True
    require_special: bool = True

    def validate(self, password: Optional[str]) -> Tuple[bool, List[str]]:
        """Validate password against policy"""
        violations = []
        password = password or ""

        if len(password) < self.min_length:
            violations.append(f"Password must be at least {self.min_length} characters long")

        if self.require_letter and not re.search(r"[a-zA-Z]", password):
            violations.append("Must contain a letter")

        if self.require_digit and not any(c.isdigit() for c in password):
            violations.append("Must contain a number")

        if self.require_special and not any(c in SPECIAL_CHARACTERS for c in password):
            violations.append("Must contain a special character")

        return len(violations) == 0, violations


def generate_salt() -> str:
    """Generate random salt for password hashing"""
    return secrets.token_hex(16)


def hash_password(password: str, salt: str) -> str:
    """Hash password with salt using scrypt"""
    return hashlib.scrypt(
        password.encode(),
        salt=salt.encode(),
        n=16384, r=8, p=1
    ).hex()


def verify_password(password: str, salt: str, expected_hash: str) -> bool:
    """Constant-time comparison of a candidate password against a stored hash"""
    if not expected_hash or not salt:
        return False
    return hmac.compare_digest(hash_password(password, salt), expected_hash)


@dataclass(frozen=True)
class TokenIdentity:
    """Caller identity carried by a verified session token"""
    user_id: str
    phone: str


class TokenIssuer:
    """Issues and verifies signed, time-limited session tokens"""

    def __init__(self, secret: str, expiry_hours: int = 24, algorithm: str = "HS256"):
        self.secret = secret
        self.expiry = timedelta(hours=expiry_hours)
        self.algorithm = algorithm

    def issue(self, user_id: str, phone: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "phone": phone,
            "iat": now,
            "exp": now + self.expiry,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> TokenIdentity:
        """
        Verify signature and expiry.

        Raises:
            Unauthorized: If the token is missing, malformed, tampered with or expired
        """
        if not token:
            raise Unauthorized("Not authenticated")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid token")

        user_id = payload.get("sub")
        if not user_id:
            raise Unauthorized("Invalid token")
        return TokenIdentity(user_id=user_id, phone=payload.get("phone", ""))
