"""
Compiles a validated transformation config into the ordered directive list
consumed by the image processor.
"""

from __future__ import annotations

from typing import List

import pydantic

from imagecraft.dto.image import UploadedImage
from imagecraft.dto.transformation import (
    AspectRatio,
    DropShadowDirective,
    RemoveBackgroundDirective,
    ResizeDirective,
    TextDirective,
    TransformationConfig,
    TransformationDescriptor,
)
from imagecraft.errors import CompileInvariantError


class TransformationComposer:
    """Stateless; ``compile`` is a pure function of its arguments."""

    def compile(
        self, config: TransformationConfig, base: UploadedImage
    ) -> TransformationDescriptor:
        if not isinstance(config, TransformationConfig):
            raise CompileInvariantError(f"Expected TransformationConfig, got {type(config).__name__}")
        if not isinstance(base, UploadedImage):
            raise CompileInvariantError(f"Expected UploadedImage, got {type(base).__name__}")

        # Stage order matters: each directive operates on the output of the previous one.
        try:
            directives: List = []
            directives.extend(self._dimension_stage(config))
            directives.extend(self._background_stage(config))
            directives.extend(self._shadow_stage(config))
            directives.extend(self._text_stage(config))
            return TransformationDescriptor(base_url=base.url, directives=tuple(directives))
        except pydantic.ValidationError as exc:
            raise CompileInvariantError(f"Validated config produced an invalid directive: {exc}") from exc

    # --------------------------------------------------------------------- stages
    @staticmethod
    def _dimension_stage(config: TransformationConfig) -> List[ResizeDirective]:
        ratio = config.aspect_ratio
        if ratio == AspectRatio.ORIGINAL:
            return []
        if ratio == AspectRatio.CUSTOM:
            width, height = config.custom_width, config.custom_height
        else:
            dims = ratio.dimensions
            if dims is None:
                raise CompileInvariantError(f"Aspect ratio {ratio.value!r} has no preset dimensions")
            width, height = dims
        return [ResizeDirective(width=width, height=height, crop=config.smart_crop_focus)]

    @staticmethod
    def _background_stage(config: TransformationConfig) -> List[RemoveBackgroundDirective]:
        return [RemoveBackgroundDirective()] if config.background_removed else []

    @staticmethod
    def _shadow_stage(config: TransformationConfig) -> List[DropShadowDirective]:
        # Emitted on the flag alone, with or without a preceding cutout.
        return [DropShadowDirective()] if config.drop_shadow else []

    @staticmethod
    def _text_stage(config: TransformationConfig) -> List[TextDirective]:
        if not config.has_text:
            return []
        return [
            TextDirective(
                content=config.text_overlay,
                font_size=config.text_font_size,
                color=config.text_color,
                position=config.text_position,
            )
        ]
