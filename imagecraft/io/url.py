import base64
import re
from typing import Dict
from urllib.parse import parse_qsl, quote, urlencode, urlparse, urlunparse

from imagecraft.dto.transformation import (
    DropShadowDirective,
    RemoveBackgroundDirective,
    ResizeDirective,
    TextDirective,
    TextPosition,
    TransformationDescriptor,
)

# ImageKit names layer positions by side, not by compass point.
LAYER_FOCUS: Dict[TextPosition, str] = {
    TextPosition.CENTER: "center",
    TextPosition.NORTH: "top",
    TextPosition.SOUTH: "bottom",
    TextPosition.EAST: "right",
    TextPosition.WEST: "left",
    TextPosition.NORTH_EAST: "top_right",
    TextPosition.NORTH_WEST: "top_left",
    TextPosition.SOUTH_EAST: "bottom_right",
    TextPosition.SOUTH_WEST: "bottom_left",
}

_PLAIN_TEXT = re.compile(r"^[A-Za-z0-9._\- ]+$")


def _text_param(content: str) -> str:
    if _PLAIN_TEXT.match(content):
        return "i-" + quote(content, safe="")
    encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
    return "ie-" + quote(encoded, safe="")


def render_directive(directive) -> str:
    """Render a single directive as one ImageKit transformation step."""
    if isinstance(directive, ResizeDirective):
        return f"w-{directive.width},h-{directive.height},fo-{directive.crop.value}"
    if isinstance(directive, RemoveBackgroundDirective):
        return "e-bgremove"
    if isinstance(directive, DropShadowDirective):
        return "e-dropshadow"
    if isinstance(directive, TextDirective):
        return ",".join(
            [
                "l-text",
                _text_param(directive.content),
                f"fs-{directive.font_size}",
                f"co-{directive.color.lstrip('#')}",
                f"lfo-{LAYER_FOCUS[directive.position]}",
                "l-end",
            ]
        )
    raise TypeError(f"Unsupported directive: {directive!r}")


def build_transformation_string(descriptor: TransformationDescriptor) -> str:
    """
    Chain the descriptor's directives in order, separated by ``:``.

    Later steps operate on the output of earlier ones.
    """
    return ":".join(render_directive(d) for d in descriptor.directives)


def build_preview_url(descriptor: TransformationDescriptor) -> str:
    """
    Returns the base URL with the directive chain attached as the ``tr`` query parameter.
    An empty descriptor yields the base URL unchanged.
    """
    if descriptor.is_identity:
        return descriptor.base_url
    parsed = urlparse(descriptor.base_url)
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != "tr"]
    query.append(("tr", build_transformation_string(descriptor)))
    return urlunparse(parsed._replace(query=urlencode(query, safe=",:-%")))
