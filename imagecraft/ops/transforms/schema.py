"""
Declared transformation options: types, bounds, defaults and UI choices.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Type

import pydantic

from imagecraft.dto.transformation import (
    AspectRatio,
    SmartCropFocus,
    TextPosition,
    TransformationConfig,
)
from imagecraft.errors import UnknownOptionError, ValidationError


@dataclass(frozen=True)
class OptionChoice:
    """One selectable value of an enumerated option, as offered to the user."""

    label: str
    value: str
    width: Optional[int] = None
    height: Optional[int] = None


_LABELS: Dict[enum.Enum, str] = {
    AspectRatio.ORIGINAL: "Original",
    AspectRatio.SQUARE: "Square (1:1)",
    AspectRatio.LANDSCAPE: "Landscape (16:9)",
    AspectRatio.PORTRAIT: "Portrait (4:5)",
    AspectRatio.STORY: "Story (9:16)",
    AspectRatio.CUSTOM: "Custom",
    SmartCropFocus.AUTO: "Auto",
    SmartCropFocus.FACE: "Face",
    SmartCropFocus.CENTER: "Center",
    SmartCropFocus.TOP: "Top",
    SmartCropFocus.BOTTOM: "Bottom",
    TextPosition.CENTER: "Center",
    TextPosition.NORTH_WEST: "Top Left",
    TextPosition.NORTH_EAST: "Top Right",
    TextPosition.SOUTH_WEST: "Bottom Left",
    TextPosition.SOUTH_EAST: "Bottom Right",
    TextPosition.NORTH: "Top",
    TextPosition.SOUTH: "Bottom",
    TextPosition.WEST: "Left",
    TextPosition.EAST: "Right",
}

_CHOICE_ORDER: Dict[Type[enum.Enum], List[enum.Enum]] = {
    AspectRatio: list(AspectRatio),
    SmartCropFocus: list(SmartCropFocus),
    TextPosition: [
        TextPosition.CENTER,
        TextPosition.NORTH_WEST,
        TextPosition.NORTH_EAST,
        TextPosition.SOUTH_WEST,
        TextPosition.SOUTH_EAST,
        TextPosition.NORTH,
        TextPosition.SOUTH,
        TextPosition.WEST,
        TextPosition.EAST,
    ],
}


class ParameterSchema:
    """
    Turns raw, possibly partial option mappings into validated configs.

    Keys may use the field name (``aspect_ratio``) or its camelCase alias
    (``aspectRatio``). Numeric options are clamped into their bounds, enumerated
    options outside their set raise :class:`UnknownOptionError`, anything else
    invalid raises :class:`ValidationError`.
    """

    config_class = TransformationConfig

    def __init__(self) -> None:
        fields = self.config_class.model_fields
        self._field_names = {name: name for name in fields}
        self._field_names.update({f.alias: name for name, f in fields.items() if f.alias})
        self._aliases = {name: (f.alias or name) for name, f in fields.items()}

    # --------------------------------------------------------------------- Apply
    def defaults(self) -> TransformationConfig:
        return self.config_class()

    def apply(self, raw: Optional[Mapping[str, Any]] = None) -> TransformationConfig:
        """Build a complete config from ``raw``; absent options take their defaults."""
        return self._validate(self._normalize_keys(raw or {}))

    def merge(self, config: TransformationConfig, patch: Mapping[str, Any]) -> TransformationConfig:
        """Return a new config with ``patch`` applied on top of ``config``."""
        values = config.model_dump(by_alias=False)
        values.update(self._normalize_keys(patch))
        return self._validate(values)

    # --------------------------------------------------------------------- Describe
    def field_names(self) -> List[str]:
        return list(self._aliases)

    def bounds(self, field: str) -> Optional[tuple]:
        """(min, max) of a numeric option, None for other options."""
        name = self._resolve(field)
        info = self.config_class.model_fields[name]
        low = high = None
        for constraint in info.metadata:
            low = getattr(constraint, "ge", low)
            high = getattr(constraint, "le", high)
        if low is None and high is None:
            return None
        return low, high

    def choices(self, field: str) -> List[OptionChoice]:
        """Selectable values of an enumerated option, in display order."""
        name = self._resolve(field)
        enum_cls = self.config_class.model_fields[name].annotation
        if enum_cls not in _CHOICE_ORDER:
            raise ValidationError(self._aliases[name], "is not an enumerated option")
        result = []
        for member in _CHOICE_ORDER[enum_cls]:
            dims = getattr(member, "dimensions", None)
            result.append(
                OptionChoice(
                    label=_LABELS[member],
                    value=member.value,
                    width=dims[0] if dims else None,
                    height=dims[1] if dims else None,
                )
            )
        return result

    # --------------------------------------------------------------------- helpers
    def _resolve(self, key: str) -> str:
        try:
            return self._field_names[key]
        except KeyError:
            raise ValidationError(key, "is not a recognized transformation option")

    def _normalize_keys(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(raw, Mapping):
            raise ValidationError("options", f"expected a mapping, got {type(raw).__name__}")
        return {self._resolve(key): value for key, value in raw.items()}

    def _validate(self, values: Dict[str, Any]) -> TransformationConfig:
        try:
            return self.config_class.model_validate(values)
        except pydantic.ValidationError as exc:
            raise self._translate(exc, values) from None

    def _translate(self, exc: pydantic.ValidationError, values: Dict[str, Any]) -> ValidationError:
        err = exc.errors()[0]
        name = str(err["loc"][0]) if err["loc"] else "options"
        name = self._field_names.get(name, name)
        field = self._aliases.get(name, name)
        if err["type"] == "enum":
            enum_cls = self.config_class.model_fields[name].annotation
            return UnknownOptionError(field, values.get(name), [m.value for m in enum_cls])
        ctx_error = err.get("ctx", {}).get("error")
        constraint = str(ctx_error) if ctx_error is not None else err["msg"]
        return ValidationError(field, constraint)
