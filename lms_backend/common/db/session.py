"""
Database Session Management

This module provides the transactional scope used by the SQL repositories.
Each scope is one unit of work: it commits when the block exits normally and
rolls back on any exception, translating driver errors into the service's
exception hierarchy.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lms_backend.common.exceptions import ConflictError, DatabaseError
from lms_backend.common.logger import app_logger

logger = app_logger.getChild("db.session")


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker,
    entity_type: str = "entity"
) -> AsyncIterator[AsyncSession]:
    """
    Provide a transactional scope around a series of operations.

    Args:
        session_factory: Factory producing ``AsyncSession`` objects
        entity_type: Name used in error messages

    Raises:
        ConflictError: If a uniqueness or integrity constraint was violated
        DatabaseError: For any other SQLAlchemy error
    """
    session = session_factory()
    try:
        yield session
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        logger.info(
            f"Integrity conflict in {entity_type} repository: {e.orig}",
            extra={"data": {"params": repr(e.params)}}
        )
        raise ConflictError(entity_type, "uniqueness constraint", cause=e)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Database error in {entity_type} repository: {e}")
        raise DatabaseError(f"{entity_type} repository failure", cause=e)
    except BaseException:
        await session.rollback()
        raise
    finally:
        await session.close()
