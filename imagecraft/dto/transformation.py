import enum
import math
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import ConfigDict, Field, ValidationInfo, field_validator

from imagecraft.dto.base import BaseInfo

CUSTOM_SIZE_MIN = 100
CUSTOM_SIZE_MAX = 2000
FONT_SIZE_MIN = 12
FONT_SIZE_MAX = 200
HEX_COLOR_PATTERN = r"^#(?:[0-9a-f]{3}|[0-9a-f]{6})$"

NUMERIC_BOUNDS: Dict[str, Tuple[int, int]] = {
    "custom_width": (CUSTOM_SIZE_MIN, CUSTOM_SIZE_MAX),
    "custom_height": (CUSTOM_SIZE_MIN, CUSTOM_SIZE_MAX),
    "text_font_size": (FONT_SIZE_MIN, FONT_SIZE_MAX),
}


# ----------------------------------- options -------------------------------------------
class AspectRatio(str, enum.Enum):
    ORIGINAL = "original"
    SQUARE = "1:1"
    LANDSCAPE = "16:9"
    PORTRAIT = "4:5"
    STORY = "9:16"
    CUSTOM = "custom"

    @property
    def dimensions(self) -> Optional[Tuple[int, int]]:
        """Fixed (width, height) of a named preset, None for original and custom."""
        return ASPECT_RATIO_PRESETS.get(self)


ASPECT_RATIO_PRESETS: Dict[AspectRatio, Tuple[int, int]] = {
    AspectRatio.SQUARE: (400, 400),
    AspectRatio.LANDSCAPE: (800, 450),
    AspectRatio.PORTRAIT: (400, 500),
    AspectRatio.STORY: (450, 800),
}


class SmartCropFocus(str, enum.Enum):
    AUTO = "auto"
    FACE = "face"
    CENTER = "center"
    TOP = "top"
    BOTTOM = "bottom"


class TextPosition(str, enum.Enum):
    CENTER = "center"
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    NORTH_EAST = "north_east"
    NORTH_WEST = "north_west"
    SOUTH_EAST = "south_east"
    SOUTH_WEST = "south_west"


# ----------------------------------- config --------------------------------------------
class TransformationConfig(BaseInfo):
    """
    Complete set of transformation options for one image.

    Instances are immutable; edits produce a new validated config, so every
    field always satisfies its bound.
    """

    model_config = ConfigDict(extra="forbid")

    aspect_ratio: AspectRatio = AspectRatio.ORIGINAL
    custom_width: int = Field(default=800, ge=CUSTOM_SIZE_MIN, le=CUSTOM_SIZE_MAX)
    custom_height: int = Field(default=600, ge=CUSTOM_SIZE_MIN, le=CUSTOM_SIZE_MAX)
    smart_crop_focus: SmartCropFocus = SmartCropFocus.AUTO
    text_overlay: str = ""
    text_font_size: int = Field(default=50, ge=FONT_SIZE_MIN, le=FONT_SIZE_MAX)
    text_color: str = Field(default="#ffffff", pattern=HEX_COLOR_PATTERN)
    text_position: TextPosition = TextPosition.CENTER
    background_removed: bool = False
    drop_shadow: bool = False

    @field_validator("custom_width", "custom_height", "text_font_size", mode="before")
    @classmethod
    def clamp_to_bounds(cls, v, info: ValidationInfo):
        low, high = NUMERIC_BOUNDS[info.field_name]
        if isinstance(v, bool):
            raise ValueError("must be a number")
        if isinstance(v, str):
            try:
                v = float(v.strip())
            except ValueError:
                raise ValueError(f"must be a number between {low} and {high}")
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("must be a finite number")
            v = round(v)
        if isinstance(v, int):
            return min(max(v, low), high)
        return v

    @field_validator("text_color", mode="before")
    @classmethod
    def normalize_color(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v and not v.startswith("#"):
                v = f"#{v}"
        return v

    @field_validator("text_overlay", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @property
    def has_text(self) -> bool:
        return bool(self.text_overlay.strip())


# ----------------------------------- directives ----------------------------------------
class ResizeDirective(BaseInfo):
    op: Literal["resize"] = "resize"
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    crop: SmartCropFocus = SmartCropFocus.AUTO


class RemoveBackgroundDirective(BaseInfo):
    op: Literal["remove_background"] = "remove_background"


class DropShadowDirective(BaseInfo):
    op: Literal["drop_shadow"] = "drop_shadow"


class TextDirective(BaseInfo):
    op: Literal["text"] = "text"
    content: str = Field(..., min_length=1)
    font_size: int
    color: str
    position: TextPosition


Directive = Annotated[
    Union[ResizeDirective, RemoveBackgroundDirective, DropShadowDirective, TextDirective],
    Field(discriminator="op"),
]


class TransformationDescriptor(BaseInfo):
    """Ordered directives to apply, in sequence, to the asset at ``base_url``."""

    base_url: str
    directives: Tuple[Directive, ...] = ()

    @property
    def ops(self) -> List[str]:
        return [d.op for d in self.directives]

    @property
    def is_identity(self) -> bool:
        return len(self.directives) == 0
