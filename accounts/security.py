"""Accounts Service - password hashing and token issuance."""

import hashlib
import hmac
import logging
import secrets
import time
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from sqlalchemy.orm import Session

from accounts.config import RESET_TOKEN_EXPIRY_MINUTES, SECRET_KEY, TOKEN_EXPIRY_SECONDS
from accounts.database import DBPasswordResetToken, DBUser
from accounts.exceptions import InvalidTokenException

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """bcrypt hashing; only the first 72 bytes of a password are significant."""

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode()[:BCRYPT_MAX_BYTES], bcrypt.gensalt()).decode()

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode()[:BCRYPT_MAX_BYTES], hashed.encode())
        except ValueError:
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False


class TokenIssuer:
    """Mints bearer tokens (JWT) and single-use password reset tokens.

    Reset tokens are random hex strings handed to the user once; only an
    HMAC-SHA256 digest is kept, one row per email, so issuing a new token
    replaces the previous one.
    """

    def __init__(
        self,
        db: Session,
        secret_key: str = SECRET_KEY,
        token_expiry_seconds: int = TOKEN_EXPIRY_SECONDS,
        reset_expiry_minutes: int = RESET_TOKEN_EXPIRY_MINUTES,
    ):
        self.db = db
        self.secret_key = secret_key
        self.token_expiry_seconds = token_expiry_seconds
        self.reset_expiry = timedelta(minutes=reset_expiry_minutes)

    # --------------- Bearer tokens ---------------

    def mint_auth_token(self, user: DBUser) -> str:
        now = time.time()
        payload = {
            "sub": user.id,
            "email": user.email,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": now + self.token_expiry_seconds,
        }
        return jwt.encode(payload, self.secret_key, algorithm=ALGORITHM)

    def verify_auth_token(self, token: str) -> dict:
        if token.startswith("Bearer "):
            token = token[7:]
        try:
            return jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise InvalidTokenException("Token expired")
        except jwt.InvalidTokenError:
            raise InvalidTokenException()

    # --------------- Reset tokens ---------------

    def _digest(self, token: str) -> str:
        return hmac.new(self.secret_key.encode(), token.encode(), hashlib.sha256).hexdigest()

    def mint_reset_token(self, user: DBUser) -> str:
        token = secrets.token_hex(32)
        key = user.email.lower()
        self.db.query(DBPasswordResetToken).filter(DBPasswordResetToken.email == key).delete()
        self.db.add(DBPasswordResetToken(
            email=key,
            user_id=user.id,
            token_hash=self._digest(token),
            created_at=datetime.now(timezone.utc).isoformat(),
        ))
        self.db.commit()
        return token

    def validate_and_consume_reset_token(self, email: str, token: str, user_id: str) -> bool:
        """Return True if ``token`` was issued to ``user_id`` under ``email``.

        A matching row is deleted but not committed; the caller's next
        commit (the password update) makes the consumption permanent.
        """
        record = self.db.get(DBPasswordResetToken, email.lower())
        if record is None or record.user_id != user_id:
            return False

        issued_at = datetime.fromisoformat(record.created_at)
        if datetime.now(timezone.utc) - issued_at > self.reset_expiry:
            self.db.delete(record)
            self.db.commit()
            return False

        if not hmac.compare_digest(record.token_hash, self._digest(token)):
            return False

        self.db.delete(record)
        return True

    def revoke_reset_tokens(self, user: DBUser) -> None:
        """Drop the user's outstanding reset tokens; committed with the caller's change."""
        self.db.query(DBPasswordResetToken).filter(DBPasswordResetToken.user_id == user.id).delete()
