"""
Settings models for the asset store credentials and upload policy.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

IMAGECRAFT_ENV_FILENAME = "imagecraft.env"
DEFAULT_UPLOAD_ENDPOINT = "https://upload.imagekit.io/api/v1"


def _normalize_url(url: Optional[str]) -> str:
    """_normalize_url"""
    if url is None:
        return ""
    parsed_url = urlparse(url)
    if not parsed_url.scheme:
        url = "https://" + url
    return url.rstrip("/")


class ImageKitCredentials(BaseSettings):
    """
    Settings model for ImageKit credentials via environment variables
    or other settings sources supported by `pydantic-settings`.
    """

    IMAGEKIT_PUBLIC_KEY: Optional[str] = None
    IMAGEKIT_PRIVATE_KEY: Optional[SecretStr] = None
    IMAGEKIT_URL_ENDPOINT: Optional[str] = None
    IMAGEKIT_UPLOAD_ENDPOINT: str = DEFAULT_UPLOAD_ENDPOINT

    model_config = SettingsConfigDict(
        env_file=IMAGECRAFT_ENV_FILENAME,
        extra="ignore",
    )

    @property
    def upload_endpoint(self) -> str:
        return _normalize_url(self.IMAGEKIT_UPLOAD_ENDPOINT)

    @property
    def url_endpoint(self) -> str:
        return _normalize_url(self.IMAGEKIT_URL_ENDPOINT)

    def validate_credentials(self) -> None:
        """Validate that all required ImageKit credentials are present."""
        missing = [
            name
            for name, value in (
                ("IMAGEKIT_PUBLIC_KEY", self.IMAGEKIT_PUBLIC_KEY),
                ("IMAGEKIT_PRIVATE_KEY", self.IMAGEKIT_PRIVATE_KEY),
                ("IMAGEKIT_URL_ENDPOINT", self.IMAGEKIT_URL_ENDPOINT),
            )
            if value is None
        ]
        if missing:
            raise ValueError(f"ImageKit credentials are missing: {', '.join(missing)}.")


class UploadSettings(BaseSettings):
    """
    Upload policy: accepted media, size limit, naming and retry behaviour.
    Every field can be overridden with an ``IMAGECRAFT_``-prefixed variable.
    """

    max_file_size: int = Field(default=10 * 1024 * 1024, gt=0)  # 10 MiB
    accepted_mime_prefix: str = "image/"
    file_name_prefix: str = "post-image"
    folder: Optional[str] = None
    use_unique_file_name: bool = True
    retry_count: int = Field(default=3, ge=1)
    retry_sleep_sec: float = Field(default=1.0, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="IMAGECRAFT_",
        env_file=IMAGECRAFT_ENV_FILENAME,
        extra="ignore",
    )
