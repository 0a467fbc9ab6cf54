from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class Shop:
    """Tenant namespace owned by exactly one account."""

    shop_id: str
    shop_name: str
    user_id: str
    created_at: datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user and the shops it owns."""

    user_id: str
    user_name: str
    created_at: datetime
    shops: list[Shop] = field(default_factory=list)


@dataclass(slots=True)
class Credentials:
    """Account row including the stored password digest; never leaves the domain layer."""

    account: Account
    password_hash: str
