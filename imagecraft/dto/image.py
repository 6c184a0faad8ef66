from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from imagecraft.dto.base import BaseInfo


class UploadedImage(BaseInfo):
    """Asset record returned by the store after a successful upload."""

    url: str = Field(..., min_length=1, description="Public URL of the uploaded asset")
    file_id: str = Field(..., min_length=1, description="Identifier assigned by the store")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    size: int = Field(..., gt=0, description="Size of the stored file in bytes")

    @property
    def size_kb(self) -> int:
        return round(self.size / 1024)

    def summary(self) -> str:
        """Dimensions and size as shown under the upload badge."""
        return f"{self.width} × {self.height} • {self.size_kb}KB"


class UploadResult(BaseInfo):
    """Outcome of an upload collaborator call: exactly one of ``data`` or ``error``."""

    success: bool
    data: Optional[UploadedImage] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def check_outcome_shape(self) -> "UploadResult":
        if self.success and self.data is None:
            raise ValueError("A successful upload result must carry data.")
        if not self.success and self.data is not None:
            raise ValueError("A failed upload result must not carry data.")
        return self

    @classmethod
    def ok(cls, data: UploadedImage) -> "UploadResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: Optional[str] = None) -> "UploadResult":
        return cls(success=False, error=error)

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "UploadResult":
        """Build a successful result from the store's upload response JSON."""
        return cls.ok(
            UploadedImage(
                url=payload["url"],
                file_id=payload["fileId"],
                width=payload["width"],
                height=payload["height"],
                size=payload["size"],
            )
        )
