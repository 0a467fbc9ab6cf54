"""Auth service orchestrating signup, signin and session lookups."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import jwt

from .account import Account, Shop
from .contracts import SigninInput, SignupInput
from ..errors import (
    AccountNotFoundError,
    ConflictError,
    HandleTakenError,
    InvalidCredentialsError,
    SessionError,
    ShopNotFoundError,
)
from ..metrics import AUTH_EVENTS
from ..repository import AccountRepository
from ..security.passwords import hash_password, verify_password
from ..security.tokens import SessionToken, decode_session_token, issue_session_token

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SigninResult:
    """Authenticated account together with the session minted for it."""

    account: Account
    session: SessionToken


class AuthService:
    """Account workflows backed by Postgres storage."""

    def __init__(self, repository: AccountRepository) -> None:
        """Store the repository used for every credential lookup and write."""
        self._repository = repository

    def signup(self, payload: SignupInput) -> Account:
        """Register an account and its shops as one unit.

        The handle pre-check gives the common case a clean error before paying
        for a password hash; the database constraints still decide races.
        """
        if self._repository.user_name_exists(payload.user_name):
            AUTH_EVENTS.labels(event="signup", outcome="handle_taken").inc()
            logger.info("signup rejected: user name %r unavailable", payload.user_name)
            raise HandleTakenError()

        password_hash = hash_password(payload.password)
        try:
            account = self._repository.create_account(
                user_name=payload.user_name,
                password_hash=password_hash,
                shop_names=payload.shop_names,
            )
        except ConflictError as exc:
            AUTH_EVENTS.labels(event="signup", outcome="conflict").inc()
            logger.info("signup for %r rejected: %s", payload.user_name, exc.message)
            raise

        AUTH_EVENTS.labels(event="signup", outcome="success").inc()
        logger.info(
            "account %s registered as %r with %d shops",
            account.user_id,
            account.user_name,
            len(account.shops),
        )
        return account

    def signin(self, payload: SigninInput) -> SigninResult:
        credentials = self._repository.get_credentials(payload.user_name)
        if credentials is None:
            AUTH_EVENTS.labels(event="signin", outcome="not_found").inc()
            raise AccountNotFoundError()

        if not verify_password(payload.password, credentials.password_hash):
            AUTH_EVENTS.labels(event="signin", outcome="invalid_password").inc()
            logger.info("signin failed for %r: password mismatch", payload.user_name)
            raise InvalidCredentialsError()

        account = credentials.account
        session = issue_session_token(
            account_id=account.user_id,
            user_name=account.user_name,
            remember_me=payload.remember_me,
        )
        AUTH_EVENTS.labels(event="signin", outcome="success").inc()
        logger.info("account %s signed in (remember_me=%s)", account.user_id, payload.remember_me)
        return SigninResult(account=account, session=session)

    def resolve_session(self, token: str | None) -> Account:
        """Return the account a session cookie belongs to."""
        if not token:
            raise SessionError("not authenticated")
        try:
            claims = decode_session_token(token)
        except jwt.ExpiredSignatureError as exc:
            raise SessionError("session expired") from exc
        except jwt.PyJWTError as exc:
            raise SessionError("invalid session") from exc

        account = self._repository.get_account(str(claims["sub"]))
        if account is None:
            raise SessionError("invalid session")
        return account

    def get_owned_shop(self, account: Account, shop_name: str) -> Shop:
        """Fetch a shop by name, hiding shops that belong to other accounts."""
        shop = self._repository.get_shop(shop_name)
        if shop is None or shop.user_id != account.user_id:
            raise ShopNotFoundError()
        return shop
