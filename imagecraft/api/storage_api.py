from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx
from pydantic import ValidationError

from imagecraft.dto.image import UploadResult

if TYPE_CHECKING:
    from imagecraft.api.api import Api

logger = logging.getLogger(__name__)

GENERIC_UPLOAD_ERROR = "Upload failed"


# ----------------------------------- dataclasses -------------------------------------------
@dataclass
class StorageConfig:
    """Configuration for StorageApi uploads."""

    upload_method: str = "files/upload"
    folder: Optional[str] = None
    use_unique_file_name: bool = True
    timeout: int = 120
    default_mime_type: str = "application/octet-stream"

    def form_fields(self, file_name: str) -> Dict[str, str]:
        """Form fields sent alongside the file part."""
        fields = {
            "fileName": file_name,
            "useUniqueFileName": "true" if self.use_unique_file_name else "false",
        }
        if self.folder:
            fields["folder"] = self.folder
        return fields


# ----------------------------------------------------------------------------------
# --------------- StorageApi ---------------------------------------------------------
# ----------------------------------------------------------------------------------
class StorageApi:
    """
    Upload collaborator backed by the asset store's upload endpoint.

    Every call resolves to exactly one :class:`UploadResult` shape: ``success=True``
    with the stored image, or ``success=False`` with the store's message.
    """

    def __init__(self, api: Api, config: Optional[StorageConfig] = None) -> None:
        self._api = api
        self._config = config or StorageConfig()

    @property
    def config(self) -> StorageConfig:
        return self._config

    async def upload_async(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: Optional[str] = None,
    ) -> UploadResult:
        """
        Upload file content under the proposed name.

        :param file_bytes: Raw file content.
        :type file_bytes: bytes
        :param file_name: Proposed name in the store.
        :type file_name: str
        :param mime_type: Content type of the file part.
        :type mime_type: str, optional
        :return: Upload outcome
        :rtype: :class:`UploadResult`
        """
        files = {"file": (file_name, file_bytes, mime_type or self._config.default_mime_type)}
        try:
            response = await self._api.post_async(
                self._config.upload_method,
                data=self._config.form_fields(file_name),
                files=files,
                timeout=self._config.timeout,
            )
        except httpx.HTTPStatusError as exc:
            message = self._api.parse_error(exc.response, default_message=GENERIC_UPLOAD_ERROR)
            logger.warning(f"Upload of {file_name!r} rejected: {message}")
            return UploadResult.failed(message)

        return self._parse_upload_response(response, file_name)

    @staticmethod
    def _parse_upload_response(response: httpx.Response, file_name: str) -> UploadResult:
        try:
            payload: Dict[str, Any] = response.json()
            result = UploadResult.from_response(payload)
        except (ValueError, KeyError, TypeError, ValidationError) as exc:
            logger.warning(f"Unexpected upload response for {file_name!r}: {exc!r}")
            return UploadResult.failed(GENERIC_UPLOAD_ERROR)
        logger.info(f"Uploaded {file_name!r} as {result.data.file_id}")
        return result
