"""
Error types for the trading system.

Every validation failure surfaces as InvalidInputError. Where a check is an
aggregate of several smaller checks, the outer error names the aggregate and
the violated primitive is attached as its cause (``raise ... from e``).
"""

from typing import Optional


class InvalidInputError(ValueError):
    """Raised when input data does not meet specifications."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    @property
    def cause(self) -> Optional[BaseException]:
        """The violated primitive check, if this error wraps one."""
        return self.__cause__
