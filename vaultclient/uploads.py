"""Concurrent per-file uploads with progress tracking and folder relocation."""

import asyncio
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Sequence, Union

from common.constants import COMPLETED_UPLOAD_LINGER_SECONDS
from common.logging_config import get_logger, log_operation
from common.types import LocalFile, UploadStatus, UploadTask
from vaultclient.credentials import CredentialProvider
from vaultclient.exceptions import AuthRequiredError, RelocationFailedError, VaultError
from vaultclient.transport import RestClient

logger = get_logger(__name__)

TaskCallback = Callable[[UploadTask], None]
ErrorCallback = Callable[[UploadTask, VaultError], None]
UploadSource = Union[LocalFile, str, Path]


class UploadCoordinator:
    """
    Runs one upload request per local file and tracks each as an UploadTask.

    Tasks are independent: a failure only ever changes its own task. A
    completed task leaves the active set after a short linger; a failed one
    stays until dismissed.
    """

    def __init__(
        self,
        rest: RestClient,
        credentials: CredentialProvider,
        on_change: Optional[TaskCallback] = None,
        on_remove: Optional[TaskCallback] = None,
        on_refresh: Optional[Callable[[], None]] = None,
        on_error: Optional[ErrorCallback] = None,
        max_concurrent: Optional[int] = None,
        linger: float = COMPLETED_UPLOAD_LINGER_SECONDS,
        upload_timeout: Optional[float] = None
    ):
        """
        Initialize the coordinator.

        Args:
            rest: REST transport
            credentials: Source of the bearer token
            on_change: Called whenever a task's status or progress changes
            on_remove: Called when a task leaves the active set
            on_refresh: Called after each successful upload so listings can reload
            on_error: Called with the task and error on upload or relocation failure
            max_concurrent: Ceiling on simultaneous uploads (None = unbounded)
            linger: Seconds a completed task stays in the active set
            upload_timeout: Base upload timeout (transport settings if None)
        """
        self._rest = rest
        self._credentials = credentials
        self.on_change = on_change
        self.on_remove = on_remove
        self.on_refresh = on_refresh
        self.on_error = on_error
        self._linger = linger
        self._upload_timeout = upload_timeout
        self._slots = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._tasks: Dict[str, UploadTask] = {}
        self._workers: Dict[str, asyncio.Task] = {}
        self._removals: Dict[str, asyncio.TimerHandle] = {}

    @property
    def active(self) -> List[UploadTask]:
        return list(self._tasks.values())

    def get(self, task_id: str) -> Optional[UploadTask]:
        return self._tasks.get(task_id)

    def enqueue(
        self,
        files: Iterable[UploadSource],
        destination_folder_id: Optional[str] = None,
        tags: Sequence[str] = ()
    ) -> List[UploadTask]:
        """
        Start uploading ``files``, one request each.

        Must be called from a running event loop.

        Args:
            files: Local files or paths
            destination_folder_id: Folder to move each uploaded file into (None = root)
            tags: Tags attached identically to every file

        Returns:
            One UploadTask per file, in input order
        """
        loop = asyncio.get_running_loop()
        tags = [tag.strip() for tag in tags if tag.strip()]
        created = []

        for source in files:
            task_id = f"upload-{uuid.uuid4().hex[:12]}"
            try:
                local_file = source if isinstance(source, LocalFile) else LocalFile.from_path(source)
            except OSError as e:
                task = UploadTask(task_id=task_id, name=Path(source).name, size=0)
                self._tasks[task_id] = task
                self._fail(task, VaultError(f"Cannot read file: {e.strerror or e}"))
                created.append(task)
                continue

            task = UploadTask(task_id=task_id, name=local_file.name, size=local_file.size)
            self._tasks[task_id] = task
            self._emit(self.on_change, task)

            worker = loop.create_task(self._upload(task, local_file, destination_folder_id, tags))
            self._workers[task_id] = worker
            worker.add_done_callback(lambda _, task_id=task_id: self._workers.pop(task_id, None))
            created.append(task)

        logger.info(
            f"Enqueued {len(created)} upload(s) [folder_id={destination_folder_id} tags={tags}]"
        )
        return created

    @asynccontextmanager
    async def _slot(self) -> AsyncIterator[None]:
        if self._slots is None:
            yield
            return
        async with self._slots:
            yield

    async def _upload(
        self,
        task: UploadTask,
        local_file: LocalFile,
        folder_id: Optional[str],
        tags: List[str]
    ) -> None:
        async with self._slot():
            token = self._credentials.get_token()
            if not token:
                self._fail(task, AuthRequiredError("Authentication required for file upload"))
                return

            try:
                with log_operation(logger, "UPLOAD", "file", task_id=task.task_id, size=task.size) as extra:
                    result = await self._rest.upload_file(
                        local_file,
                        token,
                        tags,
                        on_progress=lambda sent, total: self._on_progress(task, sent, total),
                        base_timeout=self._upload_timeout
                    )
                    extra['file_id'] = result.file.id
            except VaultError as e:
                self._fail(task, e)
                return
            except OSError as e:
                self._fail(task, VaultError(f"Cannot read file: {e.strerror or e}"))
                return

            task.status = UploadStatus.COMPLETED
            task.advance(100)
            task.file_id = result.file.id
            task.is_duplicate = result.is_duplicate
            self._emit(self.on_change, task)

            if folder_id:
                try:
                    await self._rest.move_file(result.file.id, folder_id, token)
                except VaultError as e:
                    error = RelocationFailedError(result.file.id, folder_id, e.user_message)
                    logger.warning(
                        f"Relocation failed [task_id={task.task_id} file_id={result.file.id} "
                        f"folder_id={folder_id}]: {e}"
                    )
                    task.relocation_error = error.user_message
                    self._emit(self.on_change, task)
                    self._report(task, error)

            if self.on_refresh is not None:
                try:
                    self.on_refresh()
                except Exception:
                    logger.error("Refresh callback failed", exc_info=True)

            if task.relocation_error is None:
                self._schedule_removal(task.task_id)

    def _on_progress(self, task: UploadTask, sent: int, total: int) -> None:
        if task.status is not UploadStatus.UPLOADING:
            return
        percent = round(sent / total * 100) if total else 100
        if task.advance(percent):
            self._emit(self.on_change, task)

    def _fail(self, task: UploadTask, error: VaultError) -> None:
        logger.warning(f"Upload failed [task_id={task.task_id} name={task.name}]: {error}")
        task.status = UploadStatus.ERROR
        task.error = error.user_message
        self._emit(self.on_change, task)
        self._report(task, error)

    def _report(self, task: UploadTask, error: VaultError) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(task, error)
        except Exception:
            logger.error("Upload error callback failed", exc_info=True)

    def _emit(self, callback: Optional[TaskCallback], task: UploadTask) -> None:
        if callback is None:
            return
        try:
            callback(task)
        except Exception:
            logger.error(f"Upload observer failed [task_id={task.task_id}]", exc_info=True)

    def _schedule_removal(self, task_id: str) -> None:
        loop = asyncio.get_running_loop()
        self._removals[task_id] = loop.call_later(self._linger, self._remove, task_id)

    def _remove(self, task_id: str) -> Optional[UploadTask]:
        handle = self._removals.pop(task_id, None)
        if handle is not None:
            handle.cancel()
        task = self._tasks.pop(task_id, None)
        if task is not None:
            self._emit(self.on_remove, task)
        return task

    def dismiss(self, task_id: str) -> bool:
        """
        Remove a task from the active set, cancelling its upload if still running.

        Returns:
            True if the task was active
        """
        worker = self._workers.pop(task_id, None)
        if worker is not None and not worker.done():
            logger.info(f"Cancelling in-flight upload [task_id={task_id}]")
            worker.cancel()
        return self._remove(task_id) is not None

    async def wait(self) -> None:
        """Wait until every started upload (and its relocation) has finished."""
        while True:
            pending = [worker for worker in self._workers.values() if not worker.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel all uploads and pending removals."""
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        for handle in self._removals.values():
            handle.cancel()
        self._removals.clear()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
