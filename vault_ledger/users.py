"""
User Management Module

Registration, login and token authentication. Registration creates the user and
its zero-balance wallet in one atomic unit; phone numbers are unique through a
phone index keyed by the phone number itself.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Optional
import re
import uuid

from .auth import (
    PasswordPolicy, TokenIdentity, TokenIssuer,
    generate_salt, hash_password, verify_password
)
from .errors import (
    DuplicateRecordError, InvalidInput, UserExists, UserNotFound, WrongPassword
)
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord
from .wallets import WalletEngine


PHONE_PATTERN = re.compile(r"[0-9]{10,15}")
MIN_NAME_LENGTH = 2


@dataclass
class User(StorageRecord):
    """Registered user. The password hash never leaves this object."""
    name: str
    phone: str
    password_hash: str
    password_salt: str

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "created_at": self.created_at.isoformat(),
        }


class UserManager:
    """
    Manages user registration, credential checks and session tokens
    """

    def __init__(
        self,
        storage: StorageInterface,
        wallet_engine: WalletEngine,
        token_issuer: TokenIssuer,
        password_policy: Optional[PasswordPolicy] = None
    ):
        self.storage = storage
        self.wallet_engine = wallet_engine
        self.token_issuer = token_issuer
        self.password_policy = password_policy or PasswordPolicy()
        self.users_table = "users"
        self.phone_index_table = "user_phones"
        self.logger = get_logger("vault_ledger.users")

    def register(self, name: Optional[str], phone: Optional[str],
                 password: Optional[str]) -> User:
        """
        Register a new user together with an empty wallet

        Args:
            name: Display name (at least 2 characters)
            phone: Phone number, 10 to 15 digits, unique
            password: Password satisfying the password policy

        Returns:
            Created User

        Raises:
            InvalidInput: Missing fields, malformed phone or weak password
            UserExists: Phone number already registered
        """
        if not name or not phone or not password:
            raise InvalidInput("Name, phone and password are required")
        name = name.strip()
        if len(name) < MIN_NAME_LENGTH:
            raise InvalidInput(f"Name must be at least {MIN_NAME_LENGTH} characters long")
        self._validate_phone(phone)

        is_valid, violations = self.password_policy.validate(password)
        if not is_valid:
            raise InvalidInput(f"Weak password: {', '.join(violations)}")

        if self.storage.exists(self.phone_index_table, phone):
            raise UserExists()

        now = datetime.now(timezone.utc)
        salt = generate_salt()
        user = User(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name,
            phone=phone,
            password_hash=hash_password(password, salt),
            password_salt=salt,
        )

        try:
            with self.storage.atomic():
                self.storage.insert(self.phone_index_table, phone, {"user_id": user.id})
                self.storage.insert(self.users_table, user.id, user.to_dict())
                self.wallet_engine.create_wallet(user.id)
        except DuplicateRecordError:
            raise UserExists()

        log_action(
            self.logger, "info", "User registered",
            user_id=user.id, action="register", resource=f"user:{user.id}"
        )
        return user

    def login(self, phone: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """
        Verify credentials and issue a session token

        Returns:
            {"user": User, "token": str}

        Raises:
            InvalidInput: Missing or malformed fields
            UserNotFound: No user with this phone
            WrongPassword: Password does not match
        """
        if not phone or not password:
            raise InvalidInput("Phone and password are required")
        self._validate_phone(phone)

        user = self.get_user_by_phone(phone)
        if not user:
            raise UserNotFound()

        if not verify_password(password, user.password_salt, user.password_hash):
            log_action(
                self.logger, "warning", "Login failed: wrong password",
                user_id=user.id, action="login_failed", resource="auth"
            )
            raise WrongPassword()

        token = self.token_issuer.issue(user.id, user.phone)
        log_action(
            self.logger, "info", "User authenticated successfully",
            user_id=user.id, action="login", resource="auth"
        )
        return {"user": user, "token": token}

    def authenticate(self, token: Optional[str]) -> TokenIdentity:
        """Resolve the caller identity from a session token"""
        return self.token_issuer.verify(token)

    def get_user(self, user_id: str) -> User:
        """
        Get user by ID

        Raises:
            InvalidInput: If the id is not a UUID
            UserNotFound: If no such user exists
        """
        try:
            uuid.UUID(str(user_id))
        except ValueError:
            raise InvalidInput("Invalid user id format")

        data = self.storage.load(self.users_table, user_id)
        if not data:
            raise UserNotFound()
        return User.from_dict(data)

    def get_user_by_phone(self, phone: str) -> Optional[User]:
        index = self.storage.load(self.phone_index_table, phone)
        if not index:
            return None
        data = self.storage.load(self.users_table, index["user_id"])
        return User.from_dict(data) if data else None

    @staticmethod
    def _validate_phone(phone: str) -> None:
        if not isinstance(phone, str) or not PHONE_PATTERN.fullmatch(phone):
            raise InvalidInput("Phone must be 10 to 15 digits")
