from __future__ import annotations


def resolve_tenant(hostname: str) -> str:
    """Return the shop label of ``hostname``: its first dot-delimited label.

    ``beautyhub.example.com`` and ``beautyhub.localhost:5173`` both resolve to
    ``beautyhub``. Whether that shop exists is for the caller to find out.
    """
    host = (hostname or "").strip().lower()
    if host.startswith("["):
        # bracketed IPv6 literal, never a shop
        return ""
    host = host.split(":", 1)[0]
    return host.split(".", 1)[0]
