from __future__ import annotations

from dataclasses import dataclass

from qtrack.models.enums import GlobalRole


@dataclass(frozen=True)
class Identity:
    id: str
    email: str
    role: GlobalRole

    @property
    def is_admin(self) -> bool:
        return self.role == GlobalRole.ADMIN


def resolve_identity(user_id: str | None, email: str | None, role: str | None) -> Identity | None:
    """Build the caller identity from values set by the upstream token check.

    Returns None when any value is missing or malformed. Never raises.
    """

    user_id = (user_id or "").strip()
    email = (email or "").strip()
    role = (role or "").strip().upper()
    if not user_id or not email or not role:
        return None
    if "@" not in email:
        return None
    try:
        global_role = GlobalRole(role)
    except ValueError:
        return None
    return Identity(id=user_id, email=email, role=global_role)
