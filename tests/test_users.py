"""
Test suite for user registration, login and session tokens
"""

import pytest
import uuid
from datetime import datetime, timezone, timedelta

import jwt

from vault_ledger.auth import (
    PasswordPolicy, TokenIssuer, generate_salt, hash_password, verify_password
)
from vault_ledger.errors import (
    InvalidInput, StoreError, Unauthorized, UserExists, UserNotFound, WrongPassword
)
from vault_ledger.storage import InMemoryStorage
from vault_ledger.users import UserManager
from vault_ledger.wallets import WalletEngine


SECRET = "test-secret"


class WalletlessStorage(InMemoryStorage):
    """Fails every wallet insert"""

    def insert(self, table, record_id, data):
        if table == "wallets":
            raise StoreError("wallet table unavailable")
        return super().insert(table, record_id, data)


def build_user_manager(storage):
    return UserManager(storage, WalletEngine(storage), TokenIssuer(SECRET))


class TestPasswordPolicy:
    """Test password strength rules"""

    def setup_method(self):
        self.policy = PasswordPolicy()

    def test_strong_password(self):
        assert self.policy.validate("abc12!") == (True, [])

    @pytest.mark.parametrize("password,violation", [
        ("a1!", "Password must be at least 6 characters long"),
        ("123456!", "Must contain a letter"),
        ("abcdef!", "Must contain a number"),
        ("abcdef1", "Must contain a special character"),
    ])
    def test_violations(self, password, violation):
        is_valid, violations = self.policy.validate(password)
        assert not is_valid
        assert violation in violations

    def test_custom_policy(self):
        policy = PasswordPolicy(min_length=4, require_special=False)
        assert policy.validate("ab12")[0]


class TestPasswordHashing:

    def test_hash_and_verify(self):
        salt = generate_salt()
        hashed = hash_password("abc12!", salt)

        assert hashed != "abc12!"
        assert verify_password("abc12!", salt, hashed)
        assert not verify_password("abc12?", salt, hashed)

    def test_salt_changes_hash(self):
        assert hash_password("abc12!", generate_salt()) != hash_password("abc12!", generate_salt())

    def test_missing_hash_never_verifies(self):
        assert not verify_password("abc12!", "", "")


class TestTokenIssuer:
    """Test session token issue and verification"""

    def setup_method(self):
        self.issuer = TokenIssuer(SECRET, expiry_hours=24)

    def test_round_trip(self):
        token = self.issuer.issue("user_1", "08012345678")
        identity = self.issuer.verify(token)
        assert identity.user_id == "user_1"
        assert identity.phone == "08012345678"

    def test_token_claims(self):
        now = datetime(2026, 10, 17, tzinfo=timezone.utc)
        token = self.issuer.issue("user_1", "08012345678", now=now)
        payload = jwt.decode(token, SECRET, algorithms=["HS256"], options={"verify_exp": False})
        assert payload["sub"] == "user_1"
        assert payload["exp"] - payload["iat"] == 24 * 3600

    def test_expired_token(self):
        token = self.issuer.issue(
            "user_1", "08012345678", now=datetime.now(timezone.utc) - timedelta(hours=25)
        )
        with pytest.raises(Unauthorized) as exc_info:
            self.issuer.verify(token)
        assert exc_info.value.message == "Token expired"

    def test_foreign_signature(self):
        token = TokenIssuer("other-secret").issue("user_1", "08012345678")
        with pytest.raises(Unauthorized) as exc_info:
            self.issuer.verify(token)
        assert exc_info.value.message == "Invalid token"

    @pytest.mark.parametrize("token", ["garbage", "a.b.c"])
    def test_malformed_token(self, token):
        with pytest.raises(Unauthorized):
            self.issuer.verify(token)

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, token):
        with pytest.raises(Unauthorized) as exc_info:
            self.issuer.verify(token)
        assert exc_info.value.message == "Not authenticated"


class TestUserManager:
    """Test registration and login"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.user_manager = build_user_manager(self.storage)

    def test_register_creates_user_and_wallet(self):
        user = self.user_manager.register(" Ada Obi ", "08012345678", "abc12!")

        assert user.name == "Ada Obi"
        assert user.phone == "08012345678"
        assert uuid.UUID(user.id)
        assert user.password_hash != "abc12!"

        wallet = self.user_manager.wallet_engine.get_wallet(user.id)
        assert str(wallet.balance) == "0.00"

    def test_public_dict_hides_password(self):
        user = self.user_manager.register("Ada", "08012345678", "abc12!")
        public = user.to_public_dict()
        assert set(public) == {"id", "name", "phone", "created_at"}

    def test_duplicate_phone(self):
        self.user_manager.register("Ada", "08012345678", "abc12!")
        with pytest.raises(UserExists):
            self.user_manager.register("Bola", "08012345678", "xyz98?")
        assert self.storage.count("users") == 1
        assert self.storage.count("wallets") == 1

    @pytest.mark.parametrize("variant", ["1234567890\n", " 1234567890", "1234567890 "])
    def test_phone_with_whitespace_cannot_reuse_number(self, variant):
        self.user_manager.register("Ada", "1234567890", "abc12!")
        with pytest.raises((InvalidInput, UserExists)):
            self.user_manager.register("Bola", variant, "xyz98?")
        assert self.storage.count("users") == 1
        assert self.storage.count("user_phones") == 1

    @pytest.mark.parametrize("name,phone,password", [
        (None, "08012345678", "abc12!"),
        ("Ada", "", "abc12!"),
        ("Ada", "08012345678", None),
        ("A", "08012345678", "abc12!"),
        ("Ada", "12345", "abc12!"),
        ("Ada", "0801234567a", "abc12!"),
        ("Ada", "08012345678\n", "abc12!"),
        ("Ada", "٠8012345678", "abc12!"),
        ("Ada", "08012345678", "weak"),
    ])
    def test_register_validation(self, name, phone, password):
        with pytest.raises(InvalidInput):
            self.user_manager.register(name, phone, password)
        assert self.storage.count("users") == 0

    def test_failed_wallet_creation_rolls_back_user(self):
        storage = WalletlessStorage()
        user_manager = build_user_manager(storage)

        with pytest.raises(StoreError):
            user_manager.register("Ada", "08012345678", "abc12!")

        assert storage.count("users") == 0
        assert storage.count("user_phones") == 0
        assert user_manager.get_user_by_phone("08012345678") is None

    def test_login(self):
        user = self.user_manager.register("Ada", "08012345678", "abc12!")
        session = self.user_manager.login("08012345678", "abc12!")

        assert session["user"].id == user.id
        identity = self.user_manager.authenticate(session["token"])
        assert identity.user_id == user.id

    def test_login_unknown_phone(self):
        with pytest.raises(UserNotFound):
            self.user_manager.login("08099999999", "abc12!")

    def test_login_wrong_password(self):
        self.user_manager.register("Ada", "08012345678", "abc12!")
        with pytest.raises(WrongPassword):
            self.user_manager.login("08012345678", "abc12?")

    def test_login_missing_fields(self):
        with pytest.raises(InvalidInput):
            self.user_manager.login(None, "abc12!")

    def test_get_user(self):
        user = self.user_manager.register("Ada", "08012345678", "abc12!")
        assert self.user_manager.get_user(user.id) == user

        with pytest.raises(UserNotFound):
            self.user_manager.get_user(str(uuid.uuid4()))
        with pytest.raises(InvalidInput):
            self.user_manager.get_user("not-a-uuid")
