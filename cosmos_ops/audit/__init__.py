"""
Audit Module

Automatic created/updated metadata for every document write.
"""

from .audit_field_manager import AuditFieldManager
from .user_context import (
    UserContext,
    SystemUserContext,
    DelegateUserContext,
    SYSTEM_USER
)

__all__ = [
    'AuditFieldManager',
    'UserContext',
    'SystemUserContext',
    'DelegateUserContext',
    'SYSTEM_USER',
]
