"""Chat address helpers (WhatsApp JID shapes)."""

from __future__ import annotations

USER_SERVER = "@s.whatsapp.net"
GROUP_SERVER = "@g.us"


def bare_address(identifier: str) -> str:
    """Strip the ``@server`` suffix and the ``:device`` session suffix.

    ``6281234567890:18@s.whatsapp.net`` -> ``6281234567890``
    """
    user = identifier.strip().split("@", 1)[0]
    return user.split(":", 1)[0]


def is_group_address(identifier: str) -> bool:
    return identifier.strip().endswith(GROUP_SERVER)


def chat_address(identifier: str) -> str:
    """Resolve a bare or full identifier to a user JID."""
    return f"{bare_address(identifier)}{USER_SERVER}"
