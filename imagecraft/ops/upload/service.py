from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from imagecraft.dto.file import SelectedFile
from imagecraft.dto.image import UploadedImage, UploadResult
from imagecraft.errors import (
    FileTooLargeError,
    RemoteUploadError,
    UnsupportedMediaError,
    UploadInProgressError,
)
from imagecraft.io.credentials import UploadSettings
from imagecraft.io.fs import make_upload_name
from imagecraft.ops.modal.session import ModalSession

logger = logging.getLogger(__name__)

UNEXPECTED_UPLOAD_ERROR = "Upload failed, please try again."


class UploadCollaborator(Protocol):
    async def upload_async(
        self, file_bytes: bytes, file_name: str, mime_type: Optional[str] = None
    ) -> UploadResult: ...


class UploadOrchestrator:
    """Validates a selected file and hands it to the asset store, one upload at a time."""

    def __init__(
        self,
        store: UploadCollaborator,
        settings: Optional[UploadSettings] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ):
        self._store = store
        self._settings = settings or UploadSettings()
        self._clock_ms = clock_ms

    @property
    def settings(self) -> UploadSettings:
        return self._settings

    def validate_file(self, file: SelectedFile) -> None:
        """
        Raise if ``file`` is not an image or exceeds the size limit.

        The limit applies to the larger of the reported size and the bytes
        that would actually be sent.
        """
        if not file.mime_type.startswith(self._settings.accepted_mime_prefix):
            raise UnsupportedMediaError()
        size = max(file.size, len(file.content))
        if size > self._settings.max_file_size:
            raise FileTooLargeError(size, self._settings.max_file_size)

    async def submit_file(
        self, session: ModalSession, file: Optional[SelectedFile]
    ) -> Optional[UploadedImage]:
        """
        Upload ``file`` on behalf of ``session``.

        ``session.is_uploading`` is held for the duration of the call and
        released on every exit path. Returns None when no file was given.
        """
        if file is None:
            return None
        if session.is_uploading:
            raise UploadInProgressError()

        session.is_uploading = True
        try:
            self.validate_file(file)
            now_ms = self._clock_ms() if self._clock_ms is not None else None
            name = make_upload_name(file.name, self._settings.file_name_prefix, now_ms)
            logger.debug(f"Uploading {file.name!r} ({len(file.content)} bytes) as {name!r}")
            try:
                result = await self._store.upload_async(
                    file.content, name, mime_type=file.mime_type
                )
            except Exception as exc:
                logger.warning(f"Upload error for {file.name!r}: {exc!r}")
                raise RemoteUploadError(UNEXPECTED_UPLOAD_ERROR) from exc

            if not result.success:
                raise RemoteUploadError(result.error)
            return result.data
        finally:
            session.is_uploading = False
