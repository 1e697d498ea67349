"""
Common Components

This package contains infrastructure shared across the assessment service:
1. Logging - Centralized logging configuration
2. Exceptions - The domain error hierarchy
3. Error Handling - HTTP mapping of domain errors
4. Events - Fire-and-forget domain event publishing
5. Database - Transactional session scope
"""

from lms_backend.common.logger import app_logger

__all__ = [
    'app_logger',
]
