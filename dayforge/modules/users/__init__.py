"""User profiles and scheduling preferences."""

from dayforge.modules.users.service import UserService

__all__ = ["UserService"]
