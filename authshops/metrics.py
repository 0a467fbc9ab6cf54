"""Prometheus collectors for authentication and origin decisions."""

from __future__ import annotations

from prometheus_client import Counter

AUTH_EVENTS = Counter(
    "authshops_auth_events_total",
    "Signup, signin and logout attempts by outcome.",
    ["event", "outcome"],
)

ORIGIN_REJECTIONS = Counter(
    "authshops_origin_rejections_total",
    "Requests refused because their Origin is outside the tenant domain.",
)
