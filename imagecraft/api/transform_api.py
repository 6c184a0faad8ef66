from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from imagecraft.dto.transformation import TransformationDescriptor
from imagecraft.io.url import build_preview_url

if TYPE_CHECKING:
    from imagecraft.api.api import Api

logger = logging.getLogger(__name__)


class TransformApi:
    """
    Transformation-application collaborator.

    The image processor applies directives encoded in the asset URL, so
    applying a descriptor means requesting its preview URL.
    """

    def __init__(self, api: Api, timeout: int = 120) -> None:
        self._api = api
        self._timeout = timeout

    @staticmethod
    def preview_url(descriptor: TransformationDescriptor) -> str:
        return build_preview_url(descriptor)

    async def render_async(self, url: str) -> str:
        """
        Request the transformed asset and return its URL once the processor serves it.

        Raises :class:`httpx.HTTPStatusError` when the processor rejects the directives.
        """
        response = await self._api.get_async(url, timeout=self._timeout)
        content_type = response.headers.get("content-type", "")
        logger.debug(f"Rendered {url} ({content_type}, {len(response.content)} bytes)")
        return url

    async def apply_async(self, descriptor: TransformationDescriptor) -> str:
        return await self.render_async(self.preview_url(descriptor))
