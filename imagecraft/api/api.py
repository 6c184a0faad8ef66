from typing import Optional

import httpx

from imagecraft.api._api import _Api
from imagecraft.api.storage_api import StorageApi, StorageConfig
from imagecraft.api.transform_api import TransformApi
from imagecraft.io.credentials import DEFAULT_UPLOAD_ENDPOINT, ImageKitCredentials, UploadSettings
from imagecraft.io.env import load_env


class Api(_Api):

    def __init__(
        self,
        server_address: str = DEFAULT_UPLOAD_ENDPOINT,
        private_key: Optional[str] = None,
        public_key: Optional[str] = None,
        url_endpoint: Optional[str] = None,
        retry_count: Optional[int] = None,
        retry_sleep_sec: Optional[float] = None,
        storage_config: Optional[StorageConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            server_address=server_address,
            private_key=private_key,
            public_key=public_key,
            url_endpoint=url_endpoint,
            retry_count=retry_count,
            retry_sleep_sec=retry_sleep_sec,
            transport=transport,
        )

        self.storage = StorageApi(self, storage_config)
        self.transform = TransformApi(self)

    @classmethod
    def from_env(cls, settings: Optional[UploadSettings] = None) -> "Api":
        """Create API client from environment variables."""
        load_env()
        creds = ImageKitCredentials()
        creds.validate_credentials()
        settings = settings or UploadSettings()
        return cls(
            server_address=creds.upload_endpoint,
            private_key=creds.IMAGEKIT_PRIVATE_KEY.get_secret_value(),
            public_key=creds.IMAGEKIT_PUBLIC_KEY,
            url_endpoint=creds.url_endpoint,
            retry_count=settings.retry_count,
            retry_sleep_sec=settings.retry_sleep_sec,
            storage_config=StorageConfig(
                folder=settings.folder,
                use_unique_file_name=settings.use_unique_file_name,
            ),
        )
