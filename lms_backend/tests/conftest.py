"""
Shared fixtures for the assessment tests.
"""

import pytest
import pytest_asyncio

from lms_backend.assessments.services import create_memory_services
from lms_backend.tests.builders import seed


@pytest.fixture
def services():
    return create_memory_services()


@pytest_asyncio.fixture
async def seeded(services):
    return await seed(services)
