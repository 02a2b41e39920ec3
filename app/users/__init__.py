"""User identities and the role lookup used for admin fan-out."""

from .models import Role, User, UserDirectory
from .repository import UserRepository

__all__ = ["Role", "User", "UserDirectory", "UserRepository"]
