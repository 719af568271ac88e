"""Accounts Service - the user account operations.

``UserAccountService`` only talks to its four collaborators (store, hasher,
token issuer, notifier); the FastAPI layer builds it per request in
``accounts.dependencies``.
"""

import logging
from typing import Any, Dict, List, Mapping

from accounts.exceptions import (
    EmailTakenError,
    InvalidCredentialsException,
    InvalidTokenException,
    NoUsersFoundException,
    NotFoundException,
    NotificationError,
    PasswordResetFailedException,
    ResetLinkFailedException,
    ValidationFailedException,
)
from accounts.models import AuthResponse, MessageResponse, TokenVerifyResponse, UserOut
from accounts.notifications import Notifier
from accounts.security import PasswordHasher, TokenIssuer
from accounts.store import UserStore
from accounts.validation import FieldRules, validate

logger = logging.getLogger(__name__)

# --------------- Rule tables ---------------

LOGIN_RULES = {
    "email": FieldRules(required=True, email=True),
    "password": FieldRules(required=True),
}

REGISTER_RULES = {
    "name": FieldRules(required=True, max_length=255),
    "email": FieldRules(required=True, email=True, max_length=255, unique=True),
    "password": FieldRules(required=True, min_length=6, confirmed=True),
}

FORGOT_PASSWORD_RULES = {
    "email": FieldRules(required=True, email=True, exists=True),
}

# Reset asks for a longer password than registration does.
RESET_PASSWORD_RULES = {
    "email": FieldRules(required=True, email=True, exists=True),
    "token": FieldRules(required=True),
    "password": FieldRules(required=True, min_length=8, confirmed=True),
}

CREATE_USER_RULES = {
    "name": FieldRules(required=True, max_length=255),
    "email": FieldRules(required=True, email=True, unique=True),
    "password": FieldRules(required=True, min_length=6, confirmed=True),
}

# No confirmation on update.
UPDATE_USER_RULES = {
    "name": FieldRules(nullable=True, max_length=255),
    "email": FieldRules(nullable=True, email=True, unique=True),
    "password": FieldRules(nullable=True, min_length=6),
}

EMAIL_TAKEN = {"email": ["The email has already been taken."]}


class UserAccountService:
    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenIssuer, notifier: Notifier):
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.notifier = notifier

    # --------------- Authentication ---------------

    def login(self, data: Mapping[str, Any]) -> AuthResponse:
        fields = validate(data, LOGIN_RULES)

        user = self.store.find_by_email(fields["email"])
        if not user or not self.hasher.verify(fields["password"], user.password_hash):
            logger.info("Failed login attempt")
            raise InvalidCredentialsException()

        logger.info("User %s logged in", user.id)
        return AuthResponse(
            access_token=self.tokens.mint_auth_token(user),
            user=UserOut.model_validate(user),
            message="Login successful",
        )

    def register(self, data: Mapping[str, Any]) -> AuthResponse:
        fields = validate(data, REGISTER_RULES, store=self.store)

        try:
            user = self.store.create(
                name=fields["name"],
                email=fields["email"],
                password_hash=self.hasher.hash(fields["password"]),
            )
        except EmailTakenError:
            raise ValidationFailedException(EMAIL_TAKEN)

        logger.info("Registered user %s", user.id)
        return AuthResponse(
            access_token=self.tokens.mint_auth_token(user),
            message="Signup successful",
        )

    def verify(self, token: str) -> TokenVerifyResponse:
        payload = self.tokens.verify_auth_token(token)
        user = self.store.find_by_id(payload.get("sub", ""))
        if user is None:
            raise InvalidTokenException()
        return TokenVerifyResponse(valid=True, user_id=user.id, email=user.email, name=user.name)

    # --------------- Password reset ---------------

    async def forgot_password(self, data: Mapping[str, Any]) -> MessageResponse:
        fields = validate(data, FORGOT_PASSWORD_RULES, store=self.store)

        user = self.store.find_by_email(fields["email"])
        if user is None:
            raise ResetLinkFailedException()

        token = self.tokens.mint_reset_token(user)
        try:
            await self.notifier.send(user, token)
        except NotificationError as e:
            logger.error("Could not send reset link to user %s: %s", user.id, e)
            raise ResetLinkFailedException()

        return MessageResponse(message="Password reset link sent to your email address.")

    def reset_password(self, data: Mapping[str, Any]) -> MessageResponse:
        fields = validate(data, RESET_PASSWORD_RULES, store=self.store)

        user = self.store.find_by_email(fields["email"])
        if user is None or not self.tokens.validate_and_consume_reset_token(user.email, fields["token"], user.id):
            logger.warning("Rejected password reset attempt")
            raise PasswordResetFailedException()

        self.store.update(user, password_hash=self.hasher.hash(fields["password"]))
        logger.info("Password reset for user %s", user.id)
        return MessageResponse(message="Password successfully reset.")

    # --------------- User CRUD ---------------

    def list_users(self) -> List[UserOut]:
        users = self.store.all()
        if not users:
            raise NoUsersFoundException()
        return [UserOut.model_validate(u) for u in users]

    def create_user(self, data: Mapping[str, Any]) -> UserOut:
        fields = validate(data, CREATE_USER_RULES, store=self.store)

        try:
            user = self.store.create(
                name=fields["name"],
                email=fields["email"],
                password_hash=self.hasher.hash(fields["password"]),
            )
        except EmailTakenError:
            raise ValidationFailedException(EMAIL_TAKEN)

        logger.info("Created user %s", user.id)
        return UserOut.model_validate(user)

    def update_user(self, user_id: str, data: Mapping[str, Any]) -> UserOut:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundException("User")

        fields = validate(data, UPDATE_USER_RULES, store=self.store, ignore_id=user.id)

        changes: Dict[str, Any] = {
            "name": fields["name"] or user.name,
            "email": fields["email"] or user.email,
        }
        if fields["password"] is not None:
            changes["password_hash"] = self.hasher.hash(fields["password"])
        if changes["email"].lower() != user.email.lower():
            self.tokens.revoke_reset_tokens(user)

        try:
            user = self.store.update(user, **changes)
        except EmailTakenError:
            raise ValidationFailedException(EMAIL_TAKEN)

        return UserOut.model_validate(user)

    def delete_user(self, user_id: str) -> MessageResponse:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundException("User")

        self.tokens.revoke_reset_tokens(user)
        self.store.delete(user)
        logger.info("Deleted user %s", user_id)
        return MessageResponse(message="User deleted successfully")
