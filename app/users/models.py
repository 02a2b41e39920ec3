from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence


class Role(str, Enum):
    """Supported roles."""

    ADMIN = "admin"
    USER = "user"


@dataclass(slots=True)
class User:
    """Acting identity as supplied by the auth collaborator."""

    id: int
    username: str
    full_name: str
    role: Role
    branch_id: int | None = None
    email: str | None = None
    is_active: bool = True

    def has_role(self, role: Role) -> bool:
        return self.role == role

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


class UserDirectory(Protocol):
    """Read-only user lookups the core depends on."""

    async def get_user(self, user_id: int) -> User | None:
        ...

    async def list_users_by_role(self, role: Role) -> Sequence[User]:
        ...
