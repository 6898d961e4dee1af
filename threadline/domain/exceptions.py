"""Exceptions raised by service adapters."""

from typing import Optional


class ServiceError(Exception):
    """A call to the persistence service failed."""

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.status_code = status_code
