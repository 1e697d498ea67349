"""
Database Module

This module provides the declarative base and engine lifecycle for the
assessment service.
"""

from lms_backend.database.base import Base, ModelBase, TimestampMixin, metadata

__all__ = ['Base', 'ModelBase', 'TimestampMixin', 'metadata']
