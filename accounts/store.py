"""Accounts Service - user persistence over a SQLAlchemy session."""

import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accounts.database import DBUser
from accounts.exceptions import EmailTakenError


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[DBUser]:
        return self.db.query(DBUser).filter(func.lower(DBUser.email) == email.lower()).first()

    def find_by_id(self, user_id: str) -> Optional[DBUser]:
        return self.db.get(DBUser, user_id)

    def exists_by_email(self, email: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(DBUser.id).filter(func.lower(DBUser.email) == email.lower())
        if exclude_id is not None:
            query = query.filter(DBUser.id != exclude_id)
        return query.first() is not None

    def all(self) -> List[DBUser]:
        return self.db.query(DBUser).order_by(DBUser.created_at).all()

    def create(self, name: str, email: str, password_hash: str) -> DBUser:
        user = DBUser(id=str(uuid.uuid4()), name=name, email=email, password_hash=password_hash)
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def update(self, user: DBUser, **fields) -> DBUser:
        for key, value in fields.items():
            setattr(user, key, value)
        self._commit()
        self.db.refresh(user)
        return user

    def delete(self, user: DBUser) -> None:
        self.db.delete(user)
        self.db.commit()

    def _commit(self):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise EmailTakenError(str(e.orig)) from e
