"""Domain-level request contracts shared by the HTTP and service layers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from ..errors import ValidationError

MIN_SHOP_NAMES = 3
MIN_PASSWORD_LENGTH = 8
SHOP_NAME_MAX_LENGTH = 63
SHOP_NAME_PATTERN = re.compile(r"[a-z0-9][a-z0-9-]*")


@dataclass(slots=True)
class SignupInput:
    """Validated inputs required to register an account with its shops."""

    user_name: str
    password: str
    shop_names: list[str]


@dataclass(slots=True)
class SigninInput:
    user_name: str
    password: str
    remember_me: bool = False


def normalize_user_name(user_name: str | None) -> str:
    """Trim surrounding whitespace; handles stay case-sensitive."""
    value = (user_name or "").strip()
    if not value:
        raise ValidationError("user_name is required", field="user_name")
    return value


def check_password_strength(password: str | None) -> str:
    """Return the password unchanged or raise when it misses the strength policy."""
    value = password or ""
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )
    if not any(ch.isdigit() for ch in value):
        raise ValidationError("Password must contain at least one number", field="password")
    if all(ch.isalnum() for ch in value):
        raise ValidationError(
            "Password must contain at least one special character", field="password"
        )
    return value


def normalize_shop_names(names: Iterable[str] | None) -> list[str]:
    """Trim, lowercase and de-duplicate shop names, preserving first-seen order.

    Shop names double as DNS labels, so each must match ``[a-z0-9][a-z0-9-]*``
    and fit in 63 characters. At least three distinct names must remain.
    """
    seen: dict[str, None] = {}
    for raw in names or []:
        name = (raw or "").strip().lower()
        if not name:
            continue
        if len(name) > SHOP_NAME_MAX_LENGTH or not SHOP_NAME_PATTERN.fullmatch(name):
            raise ValidationError(
                f"Shop name '{name}' may only contain letters, digits and hyphens "
                "and must start with a letter or digit",
                field="shopNames",
            )
        seen.setdefault(name, None)

    if len(seen) < MIN_SHOP_NAMES:
        raise ValidationError(
            f"Please enter at least {MIN_SHOP_NAMES} unique shop names", field="shopNames"
        )
    return list(seen)


def build_signup_input(user_name: str, password: str, shop_names: Iterable[str]) -> SignupInput:
    return SignupInput(
        user_name=normalize_user_name(user_name),
        password=check_password_strength(password),
        shop_names=normalize_shop_names(shop_names),
    )
