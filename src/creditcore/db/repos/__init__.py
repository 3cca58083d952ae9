"""Repository classes for database access."""

from creditcore.db.repos.account import AccountRepo
from creditcore.db.repos.audit import AuditRepo
from creditcore.db.repos.base import BaseRepo

__all__ = ["AccountRepo", "AuditRepo", "BaseRepo"]
