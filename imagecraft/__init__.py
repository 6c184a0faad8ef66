"""
Public package interface for imagecraft.

Upload an image to the asset store, compose transformation parameters and
compile them into the directive chain applied by the image processor.
"""

from __future__ import annotations

from imagecraft.api.api import Api
from imagecraft.dto.file import SelectedFile
from imagecraft.dto.image import UploadedImage, UploadResult
from imagecraft.dto.transformation import (
    AspectRatio,
    DropShadowDirective,
    RemoveBackgroundDirective,
    ResizeDirective,
    SmartCropFocus,
    TextDirective,
    TextPosition,
    TransformationConfig,
    TransformationDescriptor,
)
from imagecraft.errors import (
    CompileInvariantError,
    FileTooLargeError,
    ImagecraftError,
    PhaseError,
    RemoteTransformError,
    RemoteUploadError,
    TransformInProgressError,
    UnknownOptionError,
    UnsupportedMediaError,
    UploadInProgressError,
    ValidationError,
)
from imagecraft.io.url import build_preview_url, build_transformation_string
from imagecraft.ops.modal.machine import ModalStateMachine
from imagecraft.ops.modal.session import ModalPhase, ModalSession
from imagecraft.ops.transforms.composer import TransformationComposer
from imagecraft.ops.transforms.schema import OptionChoice, ParameterSchema
from imagecraft.ops.upload.service import UploadOrchestrator
