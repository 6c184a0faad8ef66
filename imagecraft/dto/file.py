import mimetypes
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, model_validator

from imagecraft.dto.base import BaseInfo
from imagecraft.io.fs import get_file_name_with_ext

DEFAULT_MIME_TYPE = "application/octet-stream"


class SelectedFile(BaseInfo):
    """A file picked by the user, before it reaches the store."""

    name: str = Field(..., description="Original file name")
    mime_type: str = Field(default=DEFAULT_MIME_TYPE, description="MIME type reported for the file")
    size: int = Field(default=0, ge=0, description="Size in bytes")
    content: bytes = Field(default=b"", repr=False)

    @model_validator(mode="before")
    def fill_size_from_content(cls, values):
        """Derive size from content when the caller did not report one"""
        if isinstance(values, dict):
            content = values.get("content")
            if content is not None and values.get("size") is None:
                values = {**values, "size": len(content)}
        return values

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "SelectedFile":
        """Read a local file and guess its MIME type from the extension."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        guessed, _ = mimetypes.guess_type(path.name)
        content = path.read_bytes()
        return cls(
            name=get_file_name_with_ext(str(path)),
            mime_type=mime_type or guessed or DEFAULT_MIME_TYPE,
            size=len(content),
            content=content,
        )

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: Optional[str] = None) -> "SelectedFile":
        guessed, _ = mimetypes.guess_type(name)
        return cls(
            name=name,
            mime_type=mime_type or guessed or DEFAULT_MIME_TYPE,
            size=len(content),
            content=content,
        )
