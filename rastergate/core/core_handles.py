"""### Opaque handles for datasets and bands. ###

Datasets opened through the adapter live in the arena of a `HandleRegistry`.
Callers only ever see tagged handles: the registry token, the arena slot and
the slot generation. Closing a dataset bumps the generation of its slot, so the
dataset handle and every band handle derived from it fail lookup from then on.
"""

# Standard library
import itertools
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

# External
from osgeo import gdal

# Internal
from rastergate.utils import utils_base, utils_gdal
from rastergate.core.core_errors import ErrorCode
from rastergate.core.core_bridge import (
    ErrorContext,
    engine_call,
    mark_failed,
    report_error,
)


_REGISTRY_TOKENS = itertools.count(1)


@dataclass(frozen=True)
class DatasetHandle:
    """Opaque reference to a dataset owned by the caller until closed."""
    _registry: int = field(repr=False)
    _slot: int
    _generation: int


@dataclass(frozen=True)
class BandHandle:
    """Reference to a 1-based band of a dataset. Valid only while the dataset is open."""
    _dataset: DatasetHandle
    _index: int


@dataclass(frozen=True)
class DatasetInfo:
    width: int
    height: int
    band_count: int


class _DatasetRecord:
    __slots__ = ("dataset", "path", "writeable", "sources")

    def __init__(
        self,
        dataset: gdal.Dataset,
        path: str,
        writeable: bool,
        sources: Optional[List[gdal.Dataset]] = None,
    ):
        self.dataset = dataset
        self.path = path
        self.writeable = writeable
        # Engine datasets a virtual dataset reads from. They must outlive it.
        self.sources = list(sources) if sources is not None else []


class HandleRegistry:
    """Arena of live datasets, addressed by `DatasetHandle`."""

    def __init__(self):
        self._token = next(_REGISTRY_TOKENS)
        self._records: List[Optional[_DatasetRecord]] = []
        self._generations: List[int] = []
        self._free_slots: List[int] = []
        self._lock = threading.Lock()

    def register(
        self,
        dataset: gdal.Dataset,
        *,
        path: str = "",
        writeable: bool = False,
        sources: Optional[List[gdal.Dataset]] = None,
    ) -> DatasetHandle:
        """Takes ownership of an engine dataset and returns its handle.

        `sources` are kept alive until the dataset is released, so closing the
        handles of the inputs of a virtual dataset never invalidates it.
        """
        if dataset is None:
            raise ValueError("Cannot register a missing dataset.")

        record = _DatasetRecord(dataset, path, writeable, sources)

        with self._lock:
            if self._free_slots:
                slot = self._free_slots.pop()
                self._records[slot] = record
            else:
                slot = len(self._records)
                self._records.append(record)
                self._generations.append(0)

            return DatasetHandle(self._token, slot, self._generations[slot])

    def lookup(self, handle: Optional[DatasetHandle]) -> Optional[_DatasetRecord]:
        """Returns the record of a live handle, or None if the handle is stale or foreign."""
        if not isinstance(handle, DatasetHandle) or handle._registry != self._token:
            return None

        with self._lock:
            if handle._slot < 0 or handle._slot >= len(self._records):
                return None

            if self._generations[handle._slot] != handle._generation:
                return None

            return self._records[handle._slot]

    def lookup_band(self, band: Optional[BandHandle]) -> Optional[Tuple[_DatasetRecord, gdal.Band]]:
        """Returns the parent record and engine band of a live band handle."""
        if not isinstance(band, BandHandle):
            return None

        record = self.lookup(band._dataset)
        if record is None:
            return None

        if band._index < 1 or band._index > record.dataset.RasterCount:
            return None

        return record, record.dataset.GetRasterBand(band._index)

    def release(self, handle: Optional[DatasetHandle]) -> Optional[_DatasetRecord]:
        """Removes a live handle from the arena and returns its record."""
        if not isinstance(handle, DatasetHandle) or handle._registry != self._token:
            return None

        # Check and release under one lock, so a slot is never freed twice.
        with self._lock:
            slot = handle._slot
            if slot < 0 or slot >= len(self._records):
                return None

            if self._generations[slot] != handle._generation or self._records[slot] is None:
                return None

            record = self._records[slot]
            self._records[slot] = None
            self._generations[slot] += 1
            self._free_slots.append(slot)

        return record

    def live_handles(self) -> List[DatasetHandle]:
        with self._lock:
            return [
                DatasetHandle(self._token, slot, self._generations[slot])
                for slot, record in enumerate(self._records)
                if record is not None
            ]

    def __contains__(self, handle) -> bool:
        return self.lookup(handle) is not None

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for record in self._records if record is not None)


class RasterSession:
    """A handle registry together with the session-level error context.

    Every flat operation takes `session=` and `ctx=` keywords. When omitted,
    the default session and its context are used.

    Parameters
    ----------
    context : Optional[ErrorContext], optional
        The session-level context. Default: a new strict context.
    """

    def __init__(self, context: Optional[ErrorContext] = None):
        utils_base._type_check(context, [ErrorContext, None], "context")

        self.registry = HandleRegistry()
        self.context = context if context is not None else ErrorContext()

    def close_all(self) -> int:
        """Closes every live dataset of the session. Returns how many were closed."""
        handles = self.registry.live_handles()
        for handle in handles:
            close_dataset(handle, session=self)

        return len(handles)

    def __enter__(self) -> "RasterSession":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close_all()


_DEFAULT_SESSION: Optional[RasterSession] = None
_DEFAULT_SESSION_LOCK = threading.Lock()


def get_default_session() -> RasterSession:
    """Returns the process-wide session backing calls made without `session=`."""
    global _DEFAULT_SESSION # pylint: disable=global-statement

    with _DEFAULT_SESSION_LOCK:
        if _DEFAULT_SESSION is None:
            _DEFAULT_SESSION = RasterSession()

        return _DEFAULT_SESSION


def _resolve_session(
    session: Optional[RasterSession],
    ctx: Optional[ErrorContext],
) -> Tuple[RasterSession, ErrorContext]:
    """Internal. Fills in the default session and the session context."""
    utils_base._type_check(session, [RasterSession, None], "session")
    utils_base._type_check(ctx, [ErrorContext, None], "ctx")

    if session is None:
        session = get_default_session()

    return session, ctx if ctx is not None else session.context


def _get_dataset_record(
    session: RasterSession,
    ctx: ErrorContext,
    dataset: Optional[DatasetHandle],
) -> Optional[_DatasetRecord]:
    """Internal. Looks up a dataset handle, reporting INVALID_PARAMS if it is not live."""
    record = session.registry.lookup(dataset)
    if record is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, "Invalid dataset handle.")

    return record


def _get_band_record(
    session: RasterSession,
    ctx: ErrorContext,
    band: Optional[BandHandle],
) -> Optional[Tuple[_DatasetRecord, gdal.Band]]:
    """Internal. Looks up a band handle, reporting INVALID_PARAMS if it is not live."""
    found = session.registry.lookup_band(band)
    if found is None:
        report_error(ctx, ErrorCode.INVALID_PARAMS, "Invalid band handle.")

    return found


def open_dataset(
    path: str,
    *,
    writeable: bool = False,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[DatasetHandle]:
    """Opens a raster dataset.

    Parameters
    ----------
    path : str
        Path to the dataset. Any path or connection string GDAL can open.
    writeable : bool, optional
        Open in update mode instead of read-only. Default: False
    ctx : Optional[ErrorContext], optional
        Receives the diagnostics. Default: the session context.
    session : Optional[RasterSession], optional
        Owns the handle. Default: the default session.

    Returns
    -------
    Optional[DatasetHandle]
        The handle, or None with error code OPEN on any failure.
    """
    session, ctx = _resolve_session(session, ctx)

    path_str = utils_base._get_path_as_str(path)
    if path_str is None or not isinstance(writeable, bool):
        report_error(ctx, ErrorCode.INVALID_PARAMS, "open requires a path and a boolean writeable flag.")
        return None

    utils_gdal._register_drivers()

    access = gdal.GA_Update if writeable else gdal.GA_ReadOnly
    dataset = engine_call(ctx, gdal.Open, path_str, access)

    if dataset is None:
        mark_failed(ctx, ErrorCode.OPEN)
        return None

    return session.registry.register(dataset, path=path_str, writeable=writeable)


def close_dataset(
    dataset: Optional[DatasetHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> None:
    """Closes a dataset. A no-op for None or for a handle that is already closed.

    After closing, the handle and every band handle derived from it are invalid.
    """
    session, ctx = _resolve_session(session, ctx)

    record = session.registry.release(dataset)
    if record is None:
        return

    engine_call(ctx, utils_gdal._release_dataset, record.dataset)
    record.dataset = None
    record.sources = []


def check_handle_is_valid(
    handle,
    *,
    session: Optional[RasterSession] = None,
) -> bool:
    """Checks whether a dataset or band handle is live, without touching the engine."""
    session, _ctx = _resolve_session(session, None)

    if isinstance(handle, BandHandle):
        return session.registry.lookup_band(handle) is not None

    return session.registry.lookup(handle) is not None


def get_band(
    dataset: Optional[DatasetHandle],
    index: int,
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[BandHandle]:
    """Gets a 1-based band of a dataset.

    Returns
    -------
    Optional[BandHandle]
        The band handle, or None with error code BAND if the index is out of range.
    """
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, dataset)
    if record is None:
        return None

    if not utils_base._type_check(index, [int], "index", throw_error=False):
        report_error(ctx, ErrorCode.INVALID_PARAMS, f"Band index must be an integer, got: {type(index).__name__}")
        return None

    band_count = record.dataset.RasterCount
    if index < 1 or index > band_count:
        report_error(
            ctx,
            ErrorCode.BAND,
            f"Band index {index} is out of bounds. Dataset has {band_count} bands (1-{band_count}).",
        )
        return None

    return BandHandle(dataset, index)


def get_dataset_info(
    dataset: Optional[DatasetHandle],
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[DatasetInfo]:
    """Returns width, height and band count of a dataset."""
    session, ctx = _resolve_session(session, ctx)

    record = _get_dataset_record(session, ctx, dataset)
    if record is None:
        return None

    return DatasetInfo(
        width=record.dataset.RasterXSize,
        height=record.dataset.RasterYSize,
        band_count=record.dataset.RasterCount,
    )


def get_last_error_message(
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> Optional[str]:
    """Returns the accumulated message of a context without clearing it."""
    session, ctx = _resolve_session(session, ctx)

    return ctx.message


def clear_error(
    *,
    ctx: Optional[ErrorContext] = None,
    session: Optional[RasterSession] = None,
) -> None:
    """Clears a context, by default the session context."""
    session, ctx = _resolve_session(session, ctx)

    ctx.clear()
