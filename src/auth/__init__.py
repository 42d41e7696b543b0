"""
Authorization Module
"""
from .admin import ensure_super_admin, is_super_admin, set_admin_status
from .dependencies import get_current_account, require_admin
from .tokens import create_access_token, decode_access_token

__all__ = [
    "ensure_super_admin",
    "is_super_admin",
    "set_admin_status",
    "get_current_account",
    "require_admin",
    "create_access_token",
    "decode_access_token",
]
