"""Stores that translate identity operations into repository calls."""

from .roles import RoleStore
from .users import UserStore

__all__ = ['RoleStore', 'UserStore']
