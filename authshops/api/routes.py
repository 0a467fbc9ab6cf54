"""HTTP route definitions for the auth and shop endpoints."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import Settings
from ..domain.account import Account, Shop
from ..domain.contracts import (
    SigninInput,
    build_signup_input,
    check_password_strength,
    normalize_shop_names,
    normalize_user_name,
)
from ..domain.service import AuthService
from ..errors import AuthShopsError, RateLimitedError, ShopNotFoundError, ValidationError
from ..metrics import AUTH_EVENTS
from ..security.rate_limiter import RateLimiter
from ..security.tokens import cookie_attributes
from ..tenancy import resolve_tenant

logger = logging.getLogger(__name__)

router = APIRouter()


def _field_rule(rule: Callable[[str], object], value):
    """Run a domain validation rule inside a pydantic validator."""
    try:
        return rule(value)
    except ValidationError as exc:
        raise ValueError(exc.message) from exc


class ShopResponse(BaseModel):
    shop_id: str
    shop_name: str
    user_id: str

    @classmethod
    def from_domain(cls, shop: Shop) -> "ShopResponse":
        return cls(shop_id=shop.shop_id, shop_name=shop.shop_name, user_id=shop.user_id)


class AccountResponse(BaseModel):
    """Serialised account; the password digest is never part of it."""

    user_id: str
    user_name: str
    created_at: str = Field(..., serialization_alias="createdAt")
    shops: list[ShopResponse]

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            user_id=account.user_id,
            user_name=account.user_name,
            created_at=account.created_at.isoformat(),
            shops=[ShopResponse.from_domain(shop) for shop in account.shops],
        )


class SignupRequest(BaseModel):
    """Registration payload as sent by the client form."""

    model_config = ConfigDict(populate_by_name=True)

    user_name: str
    password: str
    shop_names: list[str] = Field(..., alias="shopNames")

    @field_validator("user_name")
    @classmethod
    def _check_user_name(cls, value: str) -> str:
        return _field_rule(normalize_user_name, value)

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return _field_rule(check_password_strength, value)

    @field_validator("shop_names")
    @classmethod
    def _check_shop_names(cls, value: list[str]) -> list[str]:
        return _field_rule(normalize_shop_names, value)


class SigninRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_name: str
    password: str
    remember_me: bool = Field(False, alias="rememberMe")

    @field_validator("user_name")
    @classmethod
    def _check_user_name(cls, value: str) -> str:
        return _field_rule(normalize_user_name, value)


class SigninData(BaseModel):
    user_name: str = Field(..., serialization_alias="userName")


class SigninResponse(BaseModel):
    message: str
    data: SigninData


class SessionResponse(BaseModel):
    message: str
    data: AccountResponse


class MessageResponse(BaseModel):
    message: str


def get_service(request: Request) -> AuthService:
    """Resolve the `AuthService` stored on the FastAPI application state."""
    service: AuthService = request.app.state.auth_service
    return service


def get_app_settings(request: Request) -> Settings:
    """Settings the application was built with."""
    settings: Settings = request.app.state.settings
    return settings


def get_current_account(request: Request, service: AuthService = Depends(get_service)) -> Account:
    """Authenticate the request from its session cookie."""
    try:
        return service.resolve_session(request.cookies.get(get_app_settings(request).cookie_name))
    except AuthShopsError as exc:
        raise _http_error(exc) from exc


def _throttle(request: Request, key: str) -> None:
    rate_limiter: RateLimiter = request.app.state.rate_limiter
    if not rate_limiter.allow(key):
        raise _http_error(RateLimitedError())


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/auth/signup", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    request: Request,
    service: AuthService = Depends(get_service),
) -> AccountResponse:
    """Register an account together with its shops."""
    _throttle(request, f"signup:{_client_address(request)}")
    try:
        account = service.signup(
            build_signup_input(payload.user_name, payload.password, payload.shop_names)
        )
    except AuthShopsError as exc:
        raise _http_error(exc) from exc
    return AccountResponse.from_domain(account)


@router.post("/auth/signin", response_model=SigninResponse)
def signin(
    payload: SigninRequest,
    request: Request,
    response: Response,
    service: AuthService = Depends(get_service),
) -> SigninResponse:
    """Verify credentials and set the session cookie."""
    _throttle(request, f"signin:{payload.user_name}")
    try:
        result = service.signin(
            SigninInput(
                user_name=payload.user_name,
                password=payload.password,
                remember_me=payload.remember_me,
            )
        )
    except AuthShopsError as exc:
        raise _http_error(exc) from exc

    settings = get_app_settings(request)
    response.set_cookie(
        settings.cookie_name,
        result.session.token,
        max_age=result.session.max_age,
        expires=result.session.expires_at,
        **cookie_attributes(settings),
    )
    return SigninResponse(
        message="Login successful!",
        data=SigninData(user_name=result.account.user_name),
    )


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, response: Response) -> MessageResponse:
    """Tell the client to drop its session cookie; there is nothing to revoke server-side."""
    settings = get_app_settings(request)
    response.delete_cookie(settings.cookie_name, **cookie_attributes(settings))
    AUTH_EVENTS.labels(event="logout", outcome="success").inc()
    return MessageResponse(message="Logout successful!")


@router.get("/auth/session", response_model=SessionResponse)
def session(account: Account = Depends(get_current_account)) -> SessionResponse:
    """Return the signed-in account and its shops."""
    return SessionResponse(message="Session active", data=AccountResponse.from_domain(account))


@router.get("/shops/current", response_model=ShopResponse)
def current_shop(
    request: Request,
    account: Account = Depends(get_current_account),
    service: AuthService = Depends(get_service),
) -> ShopResponse:
    """Return the shop named by the request's subdomain."""
    host = request.headers.get("x-forwarded-host") or request.headers.get("host") or ""
    shop_name = resolve_tenant(host.split(",", 1)[0])
    try:
        if not shop_name:
            raise ShopNotFoundError()
        shop = service.get_owned_shop(account, shop_name)
    except AuthShopsError as exc:
        raise _http_error(exc) from exc
    return ShopResponse.from_domain(shop)


def _http_error(exc: AuthShopsError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
