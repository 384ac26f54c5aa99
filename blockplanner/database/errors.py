"""Persistence error type and the session guard used by repositories."""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session


class RepositoryError(Exception):
    """A persistence operation failed; carries the underlying driver message."""


@contextmanager
def repository_errors(db: Session, action: str, logger: logging.Logger):
    """Roll back, log, and re-raise database failures as RepositoryError."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {type(e).__name__}: {str(e)}")
        raise RepositoryError(str(e)) from e
