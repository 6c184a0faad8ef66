import asyncio
from typing import List, Optional, Tuple

import pytest

from imagecraft.dto.file import SelectedFile
from imagecraft.dto.image import UploadedImage, UploadResult
from imagecraft.io.credentials import UploadSettings

IMAGE_URL = "https://ik.imagekit.io/demo/post-image-1700000000000-cat.png"


class FakeStore:
    """Upload collaborator double; optionally blocks until ``release()``."""

    def __init__(self, result: Optional[UploadResult] = None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[Tuple[bytes, str]] = []
        self.mime_types: List[Optional[str]] = []
        self._gate: Optional[asyncio.Event] = None
        self._blocked = False

    def block(self) -> "FakeStore":
        self._blocked = True
        return self

    def release(self) -> None:
        if self._gate is None:
            self._gate = asyncio.Event()
        self._gate.set()

    async def upload_async(
        self, file_bytes: bytes, file_name: str, mime_type: Optional[str] = None
    ) -> UploadResult:
        self.calls.append((file_bytes, file_name))
        self.mime_types.append(mime_type)
        if self._blocked:
            self._gate = self._gate or asyncio.Event()
            await self._gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def uploaded_image():
    return UploadedImage(url=IMAGE_URL, file_id="file_123", width=1600, height=1200, size=245760)


@pytest.fixture
def upload_ok(uploaded_image):
    return UploadResult.ok(uploaded_image)


@pytest.fixture
def settings():
    return UploadSettings(retry_sleep_sec=0)


@pytest.fixture
def image_file():
    return SelectedFile(name="cat.png", mime_type="image/png", content=b"\x89PNG fake bytes")


@pytest.fixture
def text_file():
    return SelectedFile(name="notes.txt", mime_type="text/plain", content=b"hello")
