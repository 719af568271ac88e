"""Accounts Service - SQLAlchemy models and session helpers."""

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Index, String, create_engine, func
from sqlalchemy.orm import declarative_base, sessionmaker

from accounts.config import DATABASE_PATH

logger = logging.getLogger(__name__)

DATABASE_URL = f"sqlite:///{DATABASE_PATH}"

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class DBUser(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(String, default=utcnow)
    updated_at = Column(String, default=utcnow, onupdate=utcnow)


# Case-insensitive uniqueness lives in the database, not in the request path.
Index("uq_users_email_lower", func.lower(DBUser.__table__.c.email), unique=True)


class DBPasswordResetToken(Base):
    """One outstanding reset token per email, bound to the user it was issued to.

    Only a digest of the token is stored.
    """

    __tablename__ = "password_reset_tokens"

    email = Column(String(255), primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    token_hash = Column(String(64), nullable=False)
    created_at = Column(String, nullable=False, default=utcnow)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session():
    """Returns a direct session for non-request contexts (startup, tests)."""
    return SessionLocal()


def init_db():
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized at %s", DATABASE_PATH)
