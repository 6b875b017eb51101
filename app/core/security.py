import hashlib
import hmac
import secrets
import uuid
from datetime import timedelta
from typing import Any, Dict

import bcrypt
import jwt
from starlette.concurrency import run_in_threadpool

from app.core.settings import settings
from app.libs.formats.datetime import now_tzinfo

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


class SecurityService:
    def __init__(self):
        self.secret_key = settings.SECRET_KEY
        self.algorithm = settings.ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.audience = settings.JWT_AUDIENCE
        self.access_token_expire_minutes = float(settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        if not self.secret_key:
            raise RuntimeError("SECRET_KEY is not configured")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False  # never swallow exceptions

    # 🔐 JWT
    async def create_access_token(self, sub: str, role: str, version: int = 0) -> str:
        issued_at = now_tzinfo()
        payload: Dict[str, Any] = {
            "sub": sub,
            "role": role,
            "ver": version,
            "type": "access",
            "jti": uuid.uuid4().hex,
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.access_token_expire_minutes),
            "iss": self.issuer,
            "aud": self.audience,
        }
        return str(jwt.encode(payload, self.secret_key, algorithm=self.algorithm))

    async def decode_access_token(self, token: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise ValueError("Token expired")
        except jwt.InvalidTokenError:
            raise ValueError("Invalid token")

        if payload.get("type") != "access":
            raise ValueError("Invalid token type")
        return payload

    # 🔁 Opaque tokens (refresh, password reset, email verification)
    @staticmethod
    def generate_refresh_token() -> str:
        return secrets.token_hex(64)

    @staticmethod
    def generate_one_time_token() -> str:
        return secrets.token_urlsafe(32)

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @classmethod
    def verify_token_hash(cls, token: str, token_hash: str) -> bool:
        return hmac.compare_digest(cls.hash_token(token), token_hash)

    # 🔑 PASSWORD
    @staticmethod
    async def hash_password(plain: str) -> str:
        data = plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]
        salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
        hashed = await run_in_threadpool(bcrypt.hashpw, data, salt)
        return hashed.decode("utf-8")

    @staticmethod
    async def verify_password(plain: str, hashed: str) -> bool:
        if not hashed:
            return False
        try:
            return await run_in_threadpool(
                bcrypt.checkpw,
                plain.encode("utf-8")[:_BCRYPT_MAX_BYTES],
                hashed.encode("utf-8"),
            )
        except ValueError:
            # malformed stored hash
            return False
