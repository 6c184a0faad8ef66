"""
Phase controller for the upload & transform modal.

Phases move ``CLOSED -> UPLOAD -> TRANSFORM`` and back to ``CLOSED``. Each
``open()`` starts a new :class:`ModalSession` with a fresh token; results of
asynchronous calls that finish after their session was closed are dropped.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Protocol, Set

from imagecraft.dto.file import SelectedFile
from imagecraft.dto.image import UploadedImage
from imagecraft.dto.transformation import TransformationConfig, TransformationDescriptor
from imagecraft.errors import (
    ImagecraftError,
    PhaseError,
    RemoteTransformError,
    TransformInProgressError,
)
from imagecraft.io.credentials import UploadSettings
from imagecraft.io.url import build_preview_url
from imagecraft.ops.modal.session import ModalPhase, ModalSession
from imagecraft.ops.transforms.composer import TransformationComposer
from imagecraft.ops.transforms.schema import ParameterSchema
from imagecraft.ops.upload.service import UploadOrchestrator

if TYPE_CHECKING:
    from imagecraft.api.api import Api

logger = logging.getLogger(__name__)

UPLOAD_SUCCESS_MESSAGE = "Image uploaded successfully!"

Notifier = Callable[[str, str], None]


class TransformCollaborator(Protocol):
    async def apply_async(self, descriptor: TransformationDescriptor) -> str: ...


class ModalStateMachine:
    """Owns the active session and routes user intents to the pipeline components."""

    def __init__(
        self,
        uploader: UploadOrchestrator,
        schema: Optional[ParameterSchema] = None,
        composer: Optional[TransformationComposer] = None,
        transformer: Optional[TransformCollaborator] = None,
        notifier: Optional[Notifier] = None,
        on_close: Optional[Callable[[], None]] = None,
        on_image_select: Optional[Callable[[str], None]] = None,
    ):
        self._uploader = uploader
        self._schema = schema or ParameterSchema()
        self._composer = composer or TransformationComposer()
        self._transformer = transformer
        self._notifier = notifier
        self._on_close = on_close
        self._on_image_select = on_image_select

        self._tokens = itertools.count(1)
        self._session = self._new_session(ModalPhase.CLOSED)
        self._pending: Dict[int, Set[asyncio.Task]] = {}

    @classmethod
    def from_api(
        cls, api: "Api", settings: Optional[UploadSettings] = None, **kwargs: Any
    ) -> "ModalStateMachine":
        """Wire the machine to the storage and transform APIs of ``api``."""
        return cls(
            uploader=UploadOrchestrator(api.storage, settings),
            transformer=api.transform,
            **kwargs,
        )

    # --------------------------------------------------------------------- State
    @property
    def session(self) -> ModalSession:
        return self._session

    @property
    def phase(self) -> ModalPhase:
        return self._session.phase

    @property
    def is_uploading(self) -> bool:
        return self._session.is_uploading

    @property
    def is_transforming(self) -> bool:
        return self._session.is_transforming

    @property
    def uploaded_image(self) -> Optional[UploadedImage]:
        return self._session.uploaded_image

    @property
    def config(self) -> TransformationConfig:
        return self._session.config

    @property
    def descriptor(self) -> Optional[TransformationDescriptor]:
        return self._session.descriptor

    @property
    def preview_url(self) -> Optional[str]:
        return self._session.preview_url

    @property
    def transform_tab_enabled(self) -> bool:
        return self._session.has_image

    # --------------------------------------------------------------------- Transitions
    def open(self) -> ModalSession:
        """``CLOSED -> UPLOAD`` with default parameters. Opening an open modal is a no-op."""
        if self._session.phase != ModalPhase.CLOSED:
            return self._session
        self._session = self._new_session(ModalPhase.UPLOAD)
        logger.debug(f"Opened modal session {self._session.token}")
        return self._session

    async def submit_file(self, file: Optional[SelectedFile]) -> Optional[UploadedImage]:
        """
        Upload ``file`` and advance to the transform phase on success.

        Recoverable errors are reported through the notifier and re-raised.
        Returns None when there was no file or the session closed meanwhile.
        """
        session = self._session
        if session.phase != ModalPhase.UPLOAD:
            raise PhaseError("upload a file", session.phase)

        try:
            image = await self._uploader.submit_file(session, file)
        except ImagecraftError as exc:
            if self._is_stale(session):
                logger.info(f"Dropping upload error of closed session {session.token}: {exc}")
                return None
            self._notify("error", exc.message)
            raise

        if image is None:
            return None
        if self._is_stale(session):
            logger.info(f"Dropping upload result of closed session {session.token}")
            return None

        self._notify("success", UPLOAD_SUCCESS_MESSAGE)
        self.upload_succeeded(image)
        return image

    def schedule_upload(self, file: Optional[SelectedFile]) -> asyncio.Task:
        """Run :meth:`submit_file` as a task tracked under the current session token."""
        token = self._session.token
        task = asyncio.get_running_loop().create_task(self.submit_file(file))
        self._pending.setdefault(token, set()).add(task)

        def _forget(done: asyncio.Task) -> None:
            tasks = self._pending.get(token)
            if tasks is not None:
                tasks.discard(done)
                if not tasks:
                    del self._pending[token]
            if not done.cancelled():
                # errors were already reported through the notifier
                done.exception()

        task.add_done_callback(_forget)
        return task

    def upload_succeeded(self, image: UploadedImage) -> bool:
        """``UPLOAD -> TRANSFORM``. Ignored outside the upload phase."""
        session = self._session
        if session.phase != ModalPhase.UPLOAD:
            logger.debug(f"Ignoring upload success in phase {session.phase.value}")
            return False
        descriptor = self._composer.compile(session.config, image)
        session.uploaded_image = image
        self._commit(session, session.config, descriptor)
        session.phase = ModalPhase.TRANSFORM
        return True

    def parameter_changed(self, patch: Mapping[str, Any]) -> TransformationDescriptor:
        """Validate ``patch`` against the current parameters, commit and recompile."""
        session = self._session
        if session.phase != ModalPhase.TRANSFORM:
            raise PhaseError("change transformation parameters", session.phase)
        if session.uploaded_image is None:
            raise PhaseError("change transformation parameters without an uploaded image", session.phase)

        try:
            config = self._schema.merge(session.config, patch)
        except ImagecraftError as exc:
            self._notify("error", exc.message)
            raise
        descriptor = self._composer.compile(config, session.uploaded_image)
        self._commit(session, config, descriptor)
        return descriptor

    def request_transform_tab(self) -> None:
        session = self._session
        if session.phase == ModalPhase.TRANSFORM:
            return
        if session.phase != ModalPhase.UPLOAD or not session.has_image:
            raise PhaseError("open the transform tab without an uploaded image", session.phase)
        session.phase = ModalPhase.TRANSFORM

    def request_upload_tab(self) -> None:
        """Go back to the upload tab, keeping the uploaded image and parameters."""
        session = self._session
        if session.phase == ModalPhase.CLOSED:
            raise PhaseError("open the upload tab", session.phase)
        session.phase = ModalPhase.UPLOAD

    async def apply_transformations(self) -> Optional[str]:
        """
        Ask the image processor to materialize the current descriptor.

        Returns the rendered URL, or None if the session or its parameters
        changed before the processor answered.
        """
        session = self._session
        if session.phase != ModalPhase.TRANSFORM or session.descriptor is None:
            raise PhaseError("apply transformations", session.phase)
        if session.is_transforming:
            raise TransformInProgressError()
        if self._transformer is None:
            session.rendered_url = session.preview_url
            return session.rendered_url

        descriptor = session.descriptor
        session.is_transforming = True
        try:
            url = await self._transformer.apply_async(descriptor)
        except Exception as exc:
            if self._is_stale(session):
                logger.info(f"Dropping transform error of closed session {session.token}: {exc!r}")
                return None
            logger.warning(f"Transformation failed for {descriptor.base_url}: {exc!r}")
            error = RemoteTransformError()
            self._notify("error", error.message)
            raise error from exc
        finally:
            session.is_transforming = False

        if self._is_stale(session) or session.descriptor != descriptor:
            logger.info(f"Dropping outdated transform result for session {session.token}")
            return None
        session.rendered_url = url
        return url

    def select_image(self) -> str:
        """Hand the transformed image URL to ``on_image_select`` and close the modal."""
        session = self._session
        if session.phase == ModalPhase.CLOSED or not session.has_image:
            raise PhaseError("select an image without an uploaded image", session.phase)
        url = session.rendered_url or session.preview_url
        if self._on_image_select is not None:
            self._on_image_select(url)
        self.close()
        return url

    def close(self, cancel_pending: bool = False) -> None:
        """
        Any phase ``-> CLOSED``. The session is discarded and parameters revert to defaults.

        In-flight uploads are left to finish unless ``cancel_pending`` is set;
        their results are dropped either way.
        """
        session = self._session
        tasks = self._pending.pop(session.token, set())
        if cancel_pending:
            for task in tasks:
                if not task.done():
                    task.cancel()

        self._session = self._new_session(ModalPhase.CLOSED)
        if session.phase != ModalPhase.CLOSED:
            logger.debug(f"Closed modal session {session.token}")
            if self._on_close is not None:
                self._on_close()

    # --------------------------------------------------------------------- helpers
    def _new_session(self, phase: ModalPhase) -> ModalSession:
        return ModalSession(token=next(self._tokens), phase=phase, config=self._schema.defaults())

    def _is_stale(self, session: ModalSession) -> bool:
        return session.token != self._session.token

    @staticmethod
    def _commit(
        session: ModalSession, config: TransformationConfig, descriptor: TransformationDescriptor
    ) -> None:
        session.config = config
        session.descriptor = descriptor
        session.preview_url = build_preview_url(descriptor)
        session.rendered_url = None

    def _notify(self, level: str, message: str) -> None:
        log = logger.warning if level == "error" else logger.info
        log(message)
        if self._notifier is not None:
            self._notifier(level, message)
