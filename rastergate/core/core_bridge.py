"""### Bridge between GDAL diagnostics and per-call error contexts. ###

GDAL reports problems through its CPL error handler and, when exceptions are
enabled in the bindings, through `RuntimeError`. Every engine call made by the
adapter runs inside `engine_scope(ctx)`, which routes both into one explicit
`ErrorContext`:

- If the context carries the index of a registered host handler, each event is
  forwarded as `(severity, code, message)`. A truthy return marks the context
  failed.
- Otherwise the context is strict: events below its severity threshold are
  emitted as `EngineWarning` and ignored, the rest are appended to its message.

The handler is pushed onto GDAL's per-thread handler stack for exactly the
duration of one call, so concurrent calls on different threads never share a
handler.
"""

# Standard library
import itertools
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
from warnings import warn

# External
from osgeo import gdal

# Internal
from rastergate.utils import utils_base, utils_config, utils_gdal
from rastergate.core.core_errors import ErrorCode, EngineWarning


ErrorHandler = Callable[[int, int, str], Any]

_HANDLERS: Dict[int, ErrorHandler] = {}
_HANDLERS_LOCK = threading.Lock()
_HANDLER_INDICES = itertools.count(1)


def register_error_handler(handler: ErrorHandler) -> int:
    """Registers a host callback and returns its index.

    The callback receives `(severity, code, message)` for every diagnostic event
    raised during a call made with a context carrying the index. Returning a
    truthy value marks that context as failed.

    Parameters
    ----------
    handler : Callable[[int, int, str], Any]
        The callback.

    Returns
    -------
    int
        The handler index, always >= 1.
    """
    if not callable(handler):
        raise TypeError(f"handler must be callable, got: {type(handler)}")

    with _HANDLERS_LOCK:
        handler_idx = next(_HANDLER_INDICES)
        _HANDLERS[handler_idx] = handler

    return handler_idx


def unregister_error_handler(handler_idx: int) -> bool:
    """Removes a host callback. Returns True if it was registered."""
    with _HANDLERS_LOCK:
        return _HANDLERS.pop(handler_idx, None) is not None


def _get_error_handler(handler_idx: int) -> Optional[ErrorHandler]:
    if not handler_idx:
        return None

    with _HANDLERS_LOCK:
        return _HANDLERS.get(handler_idx)


class ErrorContext:
    """Collects the diagnostics of one call, or of a session of calls.

    The context is never cleared implicitly: call `clear()` before reusing it.

    Parameters
    ----------
    handler_idx : int, optional
        Index of a host handler from `register_error_handler`. 0 selects
        strict local mode. Default: 0
    config_options : Optional[List[str]], optional
        "KEY=VALUE" GDAL configuration options applied for the duration of
        every engine call made with this context. Default: None
    severity_threshold : Optional[int], optional
        In strict mode, events at or above this GDAL severity fail the
        context. Default: from `RASTERGATE_SEVERITY_THRESHOLD`, else warnings.
    """

    def __init__(
        self,
        *,
        handler_idx: int = 0,
        config_options: Optional[List[str]] = None,
        severity_threshold: Optional[int] = None,
    ):
        utils_base._type_check(handler_idx, [int], "handler_idx")
        utils_base._type_check(config_options, [[str], None], "config_options")

        if handler_idx < 0:
            raise ValueError(f"handler_idx must be >= 0, got: {handler_idx}")

        if not utils_gdal._check_is_options_list(config_options):
            raise ValueError(f"config_options must be 'KEY=VALUE' strings, got: {config_options}")

        if severity_threshold is None:
            severity_threshold = utils_config._get_default_severity_threshold()

        self.handler_idx = handler_idx
        self.config_options = list(config_options) if config_options is not None else []
        self.severity_threshold = utils_config._parse_severity(severity_threshold)

        self.message: Optional[str] = None
        self.failed = False
        self.error_code = ErrorCode.SUCCESS

    def has_failed(self) -> bool:
        """True once the failed flag is set or a message is present."""
        return self.failed or self.message is not None

    def append_message(self, message: str) -> None:
        """Adds a message, newline-joined to any previous one."""
        if self.message is None:
            self.message = message
        else:
            self.message = f"{self.message}\n{message}"

    def clear(self) -> None:
        """Resets message, failed flag and error code."""
        self.message = None
        self.failed = False
        self.error_code = ErrorCode.SUCCESS

    def __repr__(self) -> str:
        return (
            f"ErrorContext(failed={self.has_failed()}, error_code={self.error_code.name}, "
            f"handler_idx={self.handler_idx}, message={self.message!r})"
        )


def _dispatch_event(
    ctx: ErrorContext,
    severity: int,
    code: int,
    message: str,
) -> None:
    """Routes one diagnostic event to the context's handler or strict collector."""
    handler = _get_error_handler(ctx.handler_idx)

    if handler is not None:
        try:
            treat_as_failure = handler(severity, code, message)
        except Exception as e: # pylint: disable=broad-except
            # Errors cannot propagate back through the engine's handler stack.
            ctx.failed = True
            ctx.append_message(f"error handler raised {type(e).__name__}: {e}")
            return

        if treat_as_failure and not ctx.failed:
            ctx.failed = True
        return

    if severity < ctx.severity_threshold:
        warn(f"GDAL: {message}", EngineWarning)
        return

    ctx.append_message(message)


def _apply_config_options(options: List[str]) -> List[Tuple[str, Optional[str]]]:
    """Sets thread-local GDAL config options, returning the previous values."""
    previous = []
    for key, value in utils_gdal._parse_options_list(options):
        previous.append((key, gdal.GetThreadLocalConfigOption(key, None)))
        gdal.SetThreadLocalConfigOption(key, value)

    return previous


def _restore_config_options(previous: List[Tuple[str, Optional[str]]]) -> None:
    for key, value in reversed(previous):
        gdal.SetThreadLocalConfigOption(key, value)


@contextmanager
def engine_scope(ctx: ErrorContext) -> Iterator[ErrorContext]:
    """Runs a block of engine calls with diagnostics routed to ctx.

    A `RuntimeError` raised by the bindings inside the block ends the block and
    is recorded on the context as a failure event, unless the handler already
    delivered the same message.

    Parameters
    ----------
    ctx : ErrorContext
        The context receiving the diagnostics.

    Yields
    ------
    ErrorContext
        The same context.
    """
    delivered: List[str] = []

    def _handler(severity, code, message):
        delivered.append(message)
        _dispatch_event(ctx, severity, code, message)

    previous = _apply_config_options(ctx.config_options)
    gdal.PushErrorHandler(_handler)

    try:
        yield ctx
    except RuntimeError as e:
        message = str(e).strip() or "unknown error"
        if message not in delivered:
            code = gdal.GetLastErrorNo() or gdal.CPLE_AppDefined
            _dispatch_event(ctx, gdal.CE_Failure, code, message)
    finally:
        gdal.PopErrorHandler()
        _restore_config_options(previous)


def engine_call(ctx: ErrorContext, func: Callable, *args, **kwargs) -> Any:
    """Calls an engine function inside `engine_scope(ctx)`.

    Returns
    -------
    Any
        The function's return value, or None if the engine raised.
    """
    result = None
    with engine_scope(ctx):
        result = func(*args, **kwargs)

    return result


def force_error(ctx: ErrorContext) -> None:
    """Makes sure a failed operation leaves a message behind.

    If the context carries neither a message nor the failed flag, a generic
    "unknown error" failure event is dispatched through the normal path.
    """
    if ctx.message is None and not ctx.failed:
        _dispatch_event(ctx, gdal.CE_Failure, gdal.CPLE_AppDefined, "unknown error")


def report_error(ctx: ErrorContext, error_code: ErrorCode, message: str) -> None:
    """Records a failure detected by the adapter itself, before reaching the engine."""
    ctx.error_code = ErrorCode(error_code)
    _dispatch_event(ctx, gdal.CE_Failure, gdal.CPLE_AppDefined, message)


def mark_failed(ctx: ErrorContext, error_code: ErrorCode) -> None:
    """Records that an engine call failed through its own return value."""
    ctx.error_code = ErrorCode(error_code)
    force_error(ctx)
