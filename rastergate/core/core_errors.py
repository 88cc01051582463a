"""### Error taxonomy of the adapter layer. ###

Every flat operation reports failure as a sentinel (None or a nonzero
`ErrorCode`) plus a message held by its `ErrorContext`. The object facade
turns the same information into a `RasterGateError`.
"""

# Standard library
from enum import IntEnum
from typing import Optional, Union


class ErrorCode(IntEnum):
    """Return codes of the flat call surface. 0 is success."""
    SUCCESS = 0
    OPEN = 1
    BOUNDS = 2
    CRS = 3
    BAND = 4
    READ = 5
    WRITE = 6
    COPY = 7
    REPROJECT = 8
    VRT = 9
    INVALID_PARAMS = 10


class RasterGateError(Exception):
    """Raised by the object facade when an operation fails.

    Parameters
    ----------
    code : Union[ErrorCode, int]
        The error code of the failing operation.
    message : Optional[str], optional
        The accumulated diagnostic message. Default: None
    op : Optional[str], optional
        The name of the failing operation. Default: None
    """

    def __init__(
        self,
        code: Union[ErrorCode, int],
        message: Optional[str] = None,
        op: Optional[str] = None,
    ):
        self.code = ErrorCode(code)
        self.message = message if message else f"{self.code.name.lower()} error"
        self.op = op if op else self.code.name.lower()

        super().__init__(f"{self.op}: {self.message} (code: {int(self.code)})")


class EngineWarning(RuntimeWarning):
    """Engine diagnostics below the failure threshold of a strict error context."""
