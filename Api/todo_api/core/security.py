import os
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.argon2 import Argon2id

from todo_api.core.settings import Settings

HASH_SCHEME = "argon2id"
ACCESS_TOKEN_TYPE = "access"


class PasswordHasher:
    """
    Salted Argon2id password hashing.

    Hashes are encoded as ``argon2id$<iterations>$<lanes>$<memory_cost>$<salt>$<key>``
    so a stored hash keeps verifying after the configured work factor changes.
    """

    def __init__(self, iterations: int = 2, lanes: int = 4, memory_cost: int = 65536):
        self.iterations = iterations
        self.lanes = lanes
        self.memory_cost = memory_cost
        # Verified against when the account does not exist, so an unknown
        # email costs the same as a wrong password.
        self.dummy_hash = self.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(
            iterations=settings.PASSWORD_HASH_ITERATIONS,
            lanes=settings.PASSWORD_HASH_LANES,
            memory_cost=settings.PASSWORD_HASH_MEMORY_COST,
        )

    @staticmethod
    def _kdf(salt: bytes, iterations: int, lanes: int, memory_cost: int) -> Argon2id:
        return Argon2id(
            salt=salt,
            length=32,
            iterations=iterations,
            lanes=lanes,
            memory_cost=memory_cost,
        )

    def hash(self, password: str) -> str:
        salt = os.urandom(16)
        key = self._kdf(salt, self.iterations, self.lanes, self.memory_cost).derive(password.encode())
        return "$".join(
            [HASH_SCHEME, str(self.iterations), str(self.lanes), str(self.memory_cost), salt.hex(), key.hex()]
        )

    def verify(self, password: str, encoded: str) -> bool:
        try:
            scheme, iterations, lanes, memory_cost, salt_hex, key_hex = encoded.split("$")
            if scheme != HASH_SCHEME:
                return False
            kdf = self._kdf(bytes.fromhex(salt_hex), int(iterations), int(lanes), int(memory_cost))
            kdf.verify(password.encode(), bytes.fromhex(key_hex))
            return True
        except (InvalidKey, ValueError):
            return False


class InvalidAccessToken(Exception):
    reason = "invalid"


class MalformedToken(InvalidAccessToken):
    reason = "malformed"


class TokenSignatureMismatch(InvalidAccessToken):
    reason = "signature"


class TokenExpired(InvalidAccessToken):
    reason = "expired"


@dataclass(frozen=True)
class AccessClaims:
    user_id: int
    email: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Signs and verifies short-lived HMAC access tokens."""

    def __init__(self, settings: Settings):
        self._secret = settings.JWT_SECRET
        self._algorithm = settings.JWT_ALGORITHM
        self._ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    def issue_access(self, user_id: int, email: str, expires_delta: timedelta | None = None) -> str:
        issued_at = datetime.now(timezone.utc)
        expire = issued_at + (expires_delta if expires_delta is not None else self._ttl)
        payload = {
            "userId": user_id,
            "email": email,
            "type": ACCESS_TOKEN_TYPE,
            "iat": issued_at,
            "exp": expire,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> AccessClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired(str(exc)) from exc
        except jwt.InvalidSignatureError as exc:
            raise TokenSignatureMismatch(str(exc)) from exc
        except jwt.PyJWTError as exc:
            raise MalformedToken(str(exc)) from exc

        user_id = payload.get("userId")
        email = payload.get("email")
        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise MalformedToken("Wrong token type")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(email, str):
            raise MalformedToken("Missing identity claims")

        return AccessClaims(
            user_id=user_id,
            email=email,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    @staticmethod
    def read_expiry(token: str) -> datetime:
        """Read ``exp`` without checking the signature; only for tokens already verified."""
        payload = jwt.decode(token, options={"verify_signature": False})
        return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
