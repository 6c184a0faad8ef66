from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from imagecraft.dto.image import UploadedImage
from imagecraft.dto.transformation import TransformationConfig, TransformationDescriptor


class ModalPhase(str, enum.Enum):
    CLOSED = "closed"
    UPLOAD = "upload"
    TRANSFORM = "transform"


@dataclass
class ModalSession:
    """
    Mutable state of one modal session, from open to close.

    Owned by a single :class:`ModalStateMachine`; components receive it
    explicitly and never keep a reference past the call.
    """

    token: int
    phase: ModalPhase = ModalPhase.CLOSED
    is_uploading: bool = False
    is_transforming: bool = False

    uploaded_image: Optional[UploadedImage] = None
    config: TransformationConfig = field(default_factory=TransformationConfig)
    descriptor: Optional[TransformationDescriptor] = None
    preview_url: Optional[str] = None
    rendered_url: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return self.uploaded_image is not None

    @property
    def is_busy(self) -> bool:
        return self.is_uploading or self.is_transforming
