"""
Tests for the modal phase controller: transitions, notifications and stale results.
"""

import asyncio
from typing import List, Tuple

import pytest

from conftest import FakeStore
from imagecraft.dto.image import UploadResult
from imagecraft.dto.transformation import SmartCropFocus
from imagecraft.errors import (
    PhaseError,
    RemoteTransformError,
    RemoteUploadError,
    TransformInProgressError,
    UnknownOptionError,
    UnsupportedMediaError,
)
from imagecraft.ops.modal.machine import UPLOAD_SUCCESS_MESSAGE, ModalStateMachine
from imagecraft.ops.modal.session import ModalPhase
from imagecraft.ops.upload.service import UploadOrchestrator


class Recorder:
    def __init__(self):
        self.notifications: List[Tuple[str, str]] = []
        self.closed = 0
        self.selected: List[str] = []

    def notify(self, level: str, message: str) -> None:
        self.notifications.append((level, message))

    def on_close(self) -> None:
        self.closed += 1

    def on_image_select(self, url: str) -> None:
        self.selected.append(url)


class FakeTransformer:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []
        self._gate = None

    def block(self) -> "FakeTransformer":
        self._gate = asyncio.Event()
        return self

    def release(self) -> None:
        self._gate.set()

    async def apply_async(self, descriptor):
        self.calls.append(descriptor)
        if self._gate is not None:
            await self._gate.wait()
        if self.error is not None:
            raise self.error
        return f"{descriptor.base_url}?rendered=1"


@pytest.fixture
def recorder():
    return Recorder()


def make_machine(store, settings, recorder, transformer=None):
    return ModalStateMachine(
        UploadOrchestrator(store, settings, clock_ms=lambda: 1700000000000),
        transformer=transformer,
        notifier=recorder.notify,
        on_close=recorder.on_close,
        on_image_select=recorder.on_image_select,
    )


@pytest.fixture
def machine(settings, recorder, upload_ok):
    return make_machine(FakeStore(result=upload_ok), settings, recorder)


@pytest.fixture
def transforming(machine, image_file):
    """A machine that already holds an uploaded image."""
    machine.open()
    asyncio.run(machine.submit_file(image_file))
    return machine


def test_initial_state(machine):
    assert machine.phase == ModalPhase.CLOSED
    assert machine.uploaded_image is None
    assert machine.transform_tab_enabled is False


def test_open_starts_upload_phase_with_defaults(machine):
    session = machine.open()
    assert machine.phase == ModalPhase.UPLOAD
    assert session.config == machine.config
    assert machine.config.text_font_size == 50
    assert machine.open() is session


def test_upload_advances_to_transform(machine, image_file, uploaded_image, recorder):
    machine.open()
    image = asyncio.run(machine.submit_file(image_file))

    assert image == uploaded_image
    assert machine.phase == ModalPhase.TRANSFORM
    assert machine.uploaded_image == uploaded_image
    assert machine.transform_tab_enabled is True
    assert machine.is_uploading is False
    assert machine.descriptor.is_identity
    assert machine.preview_url == uploaded_image.url
    assert recorder.notifications == [("success", UPLOAD_SUCCESS_MESSAGE)]


def test_rejected_file_stays_in_upload_phase(machine, text_file, recorder):
    machine.open()
    with pytest.raises(UnsupportedMediaError):
        asyncio.run(machine.submit_file(text_file))
    assert machine.phase == ModalPhase.UPLOAD
    assert machine.uploaded_image is None
    assert recorder.notifications == [("error", "Please select an image file")]


def test_remote_failure_is_reported(settings, recorder, image_file):
    machine = make_machine(FakeStore(result=UploadResult.failed("Quota exceeded")), settings, recorder)
    machine.open()
    with pytest.raises(RemoteUploadError):
        asyncio.run(machine.submit_file(image_file))
    assert machine.phase == ModalPhase.UPLOAD
    assert machine.is_uploading is False
    assert recorder.notifications == [("error", "Quota exceeded")]


def test_submit_outside_upload_phase(machine, image_file):
    with pytest.raises(PhaseError):
        asyncio.run(machine.submit_file(image_file))
    assert machine.phase == ModalPhase.CLOSED


def test_parameter_change_recompiles(transforming, uploaded_image):
    descriptor = transforming.parameter_changed({"aspectRatio": "1:1", "smartCropFocus": "face"})

    assert descriptor.ops == ["resize"]
    assert descriptor.directives[0].crop == SmartCropFocus.FACE
    assert transforming.descriptor == descriptor
    assert transforming.preview_url == f"{uploaded_image.url}?tr=w-400,h-400,fo-face"

    transforming.parameter_changed({"textOverlay": "Sale", "textPosition": "south"})
    assert transforming.descriptor.ops == ["resize", "text"]
    assert transforming.config.aspect_ratio.value == "1:1"


def test_invalid_parameter_change_keeps_state(transforming, recorder):
    transforming.parameter_changed({"customWidth": 1200, "aspectRatio": "custom"})
    config, descriptor = transforming.config, transforming.descriptor

    with pytest.raises(UnknownOptionError):
        transforming.parameter_changed({"customWidth": 300, "aspectRatio": "2:1"})

    assert transforming.config is config
    assert transforming.descriptor is descriptor
    assert recorder.notifications[-1][0] == "error"


def test_parameter_change_outside_transform_phase(machine):
    machine.open()
    with pytest.raises(PhaseError):
        machine.parameter_changed({"dropShadow": True})
    assert machine.config.drop_shadow is False


def test_upload_success_ignored_outside_upload_phase(machine, uploaded_image):
    assert machine.upload_succeeded(uploaded_image) is False
    assert machine.phase == ModalPhase.CLOSED
    assert machine.uploaded_image is None


def test_close_resets_everything(transforming, recorder):
    transforming.parameter_changed({"dropShadow": True})
    transforming.close()

    assert transforming.phase == ModalPhase.CLOSED
    assert transforming.uploaded_image is None
    assert transforming.descriptor is None
    assert transforming.config.drop_shadow is False
    assert recorder.closed == 1

    transforming.close()
    assert recorder.closed == 1


def test_reopen_starts_fresh_session(transforming):
    old_token = transforming.session.token
    transforming.close()
    transforming.open()
    assert transforming.session.token != old_token
    assert transforming.phase == ModalPhase.UPLOAD
    assert transforming.uploaded_image is None


def test_upload_finishing_after_close_is_dropped(settings, recorder, image_file, upload_ok):
    store = FakeStore(result=upload_ok).block()
    machine = make_machine(store, settings, recorder)

    async def scenario():
        machine.open()
        task = asyncio.create_task(machine.submit_file(image_file))
        await asyncio.sleep(0)
        assert machine.is_uploading is True
        machine.close()
        machine.open()
        store.release()
        return await task

    assert asyncio.run(scenario()) is None
    assert machine.phase == ModalPhase.UPLOAD
    assert machine.uploaded_image is None
    assert recorder.notifications == []


def test_upload_error_after_close_is_dropped(settings, recorder, image_file):
    store = FakeStore(result=UploadResult.failed("late")).block()
    machine = make_machine(store, settings, recorder)

    async def scenario():
        machine.open()
        task = asyncio.create_task(machine.submit_file(image_file))
        await asyncio.sleep(0)
        machine.close()
        store.release()
        return await task

    assert asyncio.run(scenario()) is None
    assert recorder.notifications == []


def test_close_can_cancel_scheduled_upload(settings, recorder, image_file, upload_ok):
    store = FakeStore(result=upload_ok).block()
    machine = make_machine(store, settings, recorder)

    async def scenario():
        machine.open()
        task = machine.schedule_upload(image_file)
        await asyncio.sleep(0)
        machine.close(cancel_pending=True)
        await asyncio.gather(task, return_exceptions=True)
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert machine.phase == ModalPhase.CLOSED
    assert machine.uploaded_image is None


def test_close_cancels_every_scheduled_upload(settings, recorder, image_file, upload_ok):
    store = FakeStore(result=upload_ok).block()
    machine = make_machine(store, settings, recorder)

    async def scenario():
        machine.open()
        tasks = [machine.schedule_upload(image_file), machine.schedule_upload(image_file)]
        machine.close(cancel_pending=True)
        await asyncio.gather(*tasks, return_exceptions=True)
        return tasks

    tasks = asyncio.run(scenario())
    assert all(task.cancelled() for task in tasks)
    assert store.calls == []
    assert recorder.notifications == []


def test_scheduled_upload_advances_phase(machine, image_file):
    async def scenario():
        machine.open()
        return await machine.schedule_upload(image_file)

    assert asyncio.run(scenario()) is not None
    assert machine.phase == ModalPhase.TRANSFORM


def test_tab_requests(transforming):
    transforming.request_upload_tab()
    assert transforming.phase == ModalPhase.UPLOAD
    assert transforming.uploaded_image is not None
    transforming.request_transform_tab()
    assert transforming.phase == ModalPhase.TRANSFORM


def test_transform_tab_needs_an_image(machine):
    machine.open()
    with pytest.raises(PhaseError):
        machine.request_transform_tab()
    assert machine.phase == ModalPhase.UPLOAD


def test_apply_without_processor_uses_preview(transforming):
    transforming.parameter_changed({"backgroundRemoved": True})
    assert asyncio.run(transforming.apply_transformations()) == transforming.preview_url


def test_apply_with_processor(settings, recorder, image_file, upload_ok):
    transformer = FakeTransformer()
    machine = make_machine(FakeStore(result=upload_ok), settings, recorder, transformer)
    machine.open()
    asyncio.run(machine.submit_file(image_file))
    machine.parameter_changed({"dropShadow": True})

    url = asyncio.run(machine.apply_transformations())

    assert url.endswith("?rendered=1")
    assert transformer.calls == [machine.descriptor]
    assert machine.is_transforming is False
    assert machine.session.rendered_url == url


def test_apply_failure_is_reported(settings, recorder, image_file, upload_ok):
    transformer = FakeTransformer(error=RuntimeError("processor down"))
    machine = make_machine(FakeStore(result=upload_ok), settings, recorder, transformer)
    machine.open()
    asyncio.run(machine.submit_file(image_file))

    with pytest.raises(RemoteTransformError):
        asyncio.run(machine.apply_transformations())

    assert machine.is_transforming is False
    assert recorder.notifications[-1] == ("error", "Transformation failed, please try again.")


def test_apply_twice_and_outdated_result(settings, recorder, image_file, upload_ok):
    transformer = FakeTransformer()
    machine = make_machine(FakeStore(result=upload_ok), settings, recorder, transformer)

    async def scenario():
        machine.open()
        await machine.submit_file(image_file)
        transformer.block()
        task = asyncio.create_task(machine.apply_transformations())
        await asyncio.sleep(0)
        with pytest.raises(TransformInProgressError):
            await machine.apply_transformations()
        machine.parameter_changed({"aspectRatio": "16:9"})
        transformer.release()
        return await task

    assert asyncio.run(scenario()) is None
    assert machine.session.rendered_url is None
    assert len(transformer.calls) == 1


def test_apply_outside_transform_phase(machine):
    machine.open()
    with pytest.raises(PhaseError):
        asyncio.run(machine.apply_transformations())


def test_select_image_closes_modal(transforming, recorder, uploaded_image):
    transforming.parameter_changed({"aspectRatio": "4:5"})
    preview = transforming.preview_url

    assert transforming.select_image() == preview
    assert recorder.selected == [preview]
    assert recorder.closed == 1
    assert transforming.phase == ModalPhase.CLOSED


def test_select_image_without_upload(machine):
    machine.open()
    with pytest.raises(PhaseError):
        machine.select_image()


if __name__ == "__main__":
    pytest.main()
