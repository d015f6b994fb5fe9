"""
Inline preview resolution with a per-consumer object URL lifecycle.

A ``PreviewResolver`` belongs to exactly one consumer (a window, a REPL
session). It moves through ``IDLE -> RESOLVING(target) -> RESOLVED(target)``
and back to ``IDLE``; asking for a different target first cancels the
in-flight fetch and revokes the current object URL. At most one object URL
is live per resolver, and each one is revoked exactly once.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

from common.logging_config import get_logger, log_operation
from vaultclient.blobs import ObjectURLStore
from vaultclient.credentials import CredentialProvider
from vaultclient.exceptions import (
    PreviewTimeoutError,
    TooLargeError,
    TransportTimeoutError,
    UnsupportedTypeError,
    VaultError,
)
from vaultclient.file_kinds import (
    PreviewKind,
    preview_timeout,
    renderer_for,
    require_preview_kind,
    size_ceiling,
)
from vaultclient.schemas import FileDescriptor
from vaultclient.transport import RestClient, content_endpoint

logger = get_logger(__name__)


class ResolverState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class NoPreviewReason(str, Enum):
    UNSUPPORTED = "unsupported"
    SUPERSEDED = "superseded"
    CLOSED = "closed"


@dataclass
class PreviewSession:
    """A resolved preview: the object URL plus what is needed to render it."""
    file_id: str
    url: str
    kind: PreviewKind
    filename: str
    mime_type: str
    size: int
    path: Path
    _disposer: Callable[["PreviewSession"], bool] = field(repr=False, compare=False)

    @property
    def renderer(self) -> str:
        return renderer_for(self.kind)

    def dispose(self) -> bool:
        """
        Release this session's object URL.

        Safe to call more than once; only the first call on a still-current
        session revokes anything.

        Returns:
            True if this call revoked the URL
        """
        return self._disposer(self)


@dataclass(frozen=True)
class NoPreview:
    """Terminal "nothing to show" outcome; the caller offers download instead."""
    file_id: str
    reason: NoPreviewReason


@dataclass(frozen=True)
class PreviewError:
    """A preview that failed with a user-facing error."""
    file_id: str
    error: VaultError

    @property
    def message(self) -> str:
        return self.error.user_message


PreviewResult = Union[PreviewSession, NoPreview, PreviewError]


@dataclass
class _InFlight:
    file_id: str
    outcome: asyncio.Future
    task: Optional[asyncio.Task] = None


class PreviewResolver:
    """Resolves file previews for one consumer."""

    def __init__(
        self,
        rest: RestClient,
        credentials: CredentialProvider,
        store: Optional[ObjectURLStore] = None,
        timeouts: Optional[Mapping[PreviewKind, float]] = None
    ):
        """
        Initialize the resolver.

        Args:
            rest: REST transport
            credentials: Source of the bearer token
            store: Object URL store owned by this resolver (a fresh one if None)
            timeouts: Per-kind fetch timeouts overriding the defaults
        """
        self._rest = rest
        self._credentials = credentials
        self._store = store if store is not None else ObjectURLStore()
        self._timeouts = dict(timeouts or {})
        self._state = ResolverState.IDLE
        self._target_id: Optional[str] = None
        self._in_flight: Optional[_InFlight] = None
        self._session: Optional[PreviewSession] = None
        self._failure: Optional[PreviewError] = None
        self._closed = False

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def target_id(self) -> Optional[str]:
        return self._target_id

    @property
    def session(self) -> Optional[PreviewSession]:
        return self._session

    @property
    def store(self) -> ObjectURLStore:
        return self._store

    async def resolve(self, file: FileDescriptor, is_public: bool = False) -> PreviewResult:
        """
        Resolve a preview for ``file``.

        Never raises for preview failures; they come back as PreviewError.

        Args:
            file: File to preview
            is_public: True when browsing through a public share (no credentials)

        Returns:
            PreviewSession, NoPreview or PreviewError
        """
        if self._closed:
            raise RuntimeError("PreviewResolver is closed")

        if file.id == self._target_id:
            if self._state is ResolverState.RESOLVED and self._session is not None:
                logger.debug(f"Preview already resolved [file_id={file.id}]")
                return self._session
            if self._state is ResolverState.RESOLVING and self._in_flight is not None:
                logger.debug(f"Joining in-flight preview [file_id={file.id}]")
                return await asyncio.shield(self._in_flight.outcome)

        self._reset(NoPreviewReason.SUPERSEDED)

        try:
            kind = require_preview_kind(file.mime_type)
        except UnsupportedTypeError as e:
            logger.info(f"No previewer for file [file_id={file.id} mime={e.mime_type}]")
            return NoPreview(file.id, NoPreviewReason.UNSUPPORTED)

        self._target_id = file.id
        try:
            limit = size_ceiling(kind)
            if limit is not None and file.size_bytes > limit:
                raise TooLargeError(kind.value, file.size_bytes, limit)
            endpoint, headers = content_endpoint(file, is_public, self._credentials.get_token())
        except VaultError as e:
            return self._fail(PreviewError(file.id, e))

        in_flight = _InFlight(file.id, asyncio.get_running_loop().create_future())
        self._in_flight = in_flight
        self._state = ResolverState.RESOLVING
        in_flight.task = asyncio.create_task(self._fetch(in_flight, file, kind, endpoint, headers))
        in_flight.task.add_done_callback(lambda task: self._on_fetch_done(in_flight, task))
        return await asyncio.shield(in_flight.outcome)

    def _on_fetch_done(self, in_flight: _InFlight, task: asyncio.Task) -> None:
        if task.cancelled() or in_flight.outcome.done():
            return
        error = task.exception()
        if error is None:
            return
        logger.error(f"Unexpected preview failure [file_id={in_flight.file_id}]", exc_info=error)
        result = PreviewError(in_flight.file_id, VaultError(f"Failed to load preview: {error}"))
        if in_flight is self._in_flight:
            self._in_flight = None
            self._fail(result)
        in_flight.outcome.set_result(result)

    async def _fetch(
        self,
        in_flight: _InFlight,
        file: FileDescriptor,
        kind: PreviewKind,
        endpoint: str,
        headers: dict
    ) -> None:
        timeout = self._timeouts.get(kind, preview_timeout(kind))
        try:
            with log_operation(logger, "PREVIEW", "fetch", file_id=file.id, kind=kind.value) as extra:
                data, _ = await asyncio.wait_for(self._rest.fetch_bytes(endpoint, headers), timeout)
                extra['bytes'] = len(data)
        except (asyncio.TimeoutError, TransportTimeoutError):
            result: PreviewResult = PreviewError(file.id, PreviewTimeoutError(timeout))
        except VaultError as e:
            result = PreviewError(file.id, e)
        else:
            try:
                path = await self._store.spool(data, file.original_filename)
                result = self._commit(in_flight, file, kind, path, len(data))
            except OSError as e:
                logger.error(f"Could not store preview [file_id={file.id}]: {e}", exc_info=True)
                result = PreviewError(file.id, VaultError(f"Could not store preview: {e}"))

        if in_flight is self._in_flight:
            self._in_flight = None
            if isinstance(result, PreviewError):
                self._fail(result)
        if not in_flight.outcome.done():
            in_flight.outcome.set_result(result)

    def _commit(
        self,
        in_flight: _InFlight,
        file: FileDescriptor,
        kind: PreviewKind,
        path: Path,
        size: int
    ) -> PreviewResult:
        if in_flight is not self._in_flight or self._target_id != file.id:
            logger.debug(f"Dropping stale preview response [file_id={file.id}]")
            self._store.discard(path)
            return NoPreview(file.id, NoPreviewReason.SUPERSEDED)

        url = self._store.adopt(path, file.mime_type, size)
        session = PreviewSession(
            file_id=file.id,
            url=url,
            kind=kind,
            filename=file.original_filename,
            mime_type=file.mime_type,
            size=size,
            path=path,
            _disposer=self._release,
        )
        self._session = session
        self._state = ResolverState.RESOLVED
        return session

    def _fail(self, failure: PreviewError) -> PreviewError:
        logger.warning(f"Preview failed [file_id={failure.file_id}]: {failure.message}")
        self._failure = failure
        self._state = ResolverState.FAILED
        return failure

    def _release(self, session: PreviewSession) -> bool:
        if session is not self._session:
            return False
        self._reset(NoPreviewReason.CLOSED)
        return True

    def _reset(self, reason: NoPreviewReason) -> None:
        in_flight, self._in_flight = self._in_flight, None
        if in_flight is not None:
            if in_flight.task is not None:
                in_flight.task.cancel()
            if not in_flight.outcome.done():
                in_flight.outcome.set_result(NoPreview(in_flight.file_id, reason))
            logger.debug(f"Cancelled in-flight preview [file_id={in_flight.file_id} reason={reason.value}]")

        session, self._session = self._session, None
        if session is not None:
            self._store.revoke(session.url)

        self._target_id = None
        self._failure = None
        self._state = ResolverState.IDLE

    def read_text(self, session: PreviewSession) -> str:
        """Decode a text session's contents for the inline viewer."""
        return self._store.read_bytes(session.url).decode('utf-8', errors='replace')

    def close(self) -> None:
        """Consumer closed the preview: cancel any fetch and revoke the URL."""
        self._reset(NoPreviewReason.CLOSED)

    async def aclose(self) -> None:
        """Consumer is going away: close, wait for cancellation, drop the store."""
        in_flight = self._in_flight
        self.close()
        self._closed = True
        if in_flight is not None and in_flight.task is not None:
            await asyncio.gather(in_flight.task, return_exceptions=True)
        self._store.close()

    async def __aenter__(self) -> "PreviewResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
