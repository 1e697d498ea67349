"""
Database Module

This package provides the transactional session helper shared by the SQL
repositories.
"""

from lms_backend.common.db.session import session_scope

__all__ = [
    'session_scope',
]
