"""Base service class providing common functionality.

Services orchestrate the data-access models; they hold no state of their
own beyond their collaborators.
"""

import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..db import DatabaseManager


class BaseService:
    """Base class for all service implementations.

    Provides common functionality including:
    - Database availability check
    - Standardized logging configuration
    """

    def __init__(self, db_manager: Optional["DatabaseManager"] = None):
        self._db_manager = db_manager

        # Configure logger with class name
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def logger(self) -> logging.Logger:
        """Access to the service logger."""
        return self._logger

    def _validate_database_available(self) -> None:
        """Validate that database features are available.

        Raises:
            RuntimeError: If database manager is not configured
        """
        if self._db_manager is None:
            raise RuntimeError(
                "Database features are not available. "
                "Service requires DATABASE_URL to be configured."
            )

    def _log_operation(self, operation: str, **kwargs) -> None:
        """Log a service operation with context."""
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        self._logger.info(f"{operation}: {context}")

    def _log_error(self, operation: str, error: Exception, **kwargs) -> None:
        """Log an error with context."""
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        self._logger.error(
            f"{operation} failed: {error.__class__.__name__}: {error}",
            extra={"context": context},
            exc_info=True
        )
