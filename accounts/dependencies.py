from fastapi import Depends
from sqlalchemy.orm import Session

from accounts.database import get_db
from accounts.notifications import Notifier, default_notifier
from accounts.security import PasswordHasher, TokenIssuer
from accounts.service import UserAccountService
from accounts.store import UserStore


def get_notifier() -> Notifier:
    return default_notifier()


def get_service(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> UserAccountService:
    return UserAccountService(
        store=UserStore(db),
        hasher=PasswordHasher(),
        tokens=TokenIssuer(db),
        notifier=notifier,
    )
