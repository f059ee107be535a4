"""Route metadata derived from the matched route."""

import re
from dataclasses import dataclass
from typing import Any, Optional

_VERSION_SEGMENT = re.compile(r"^v.+$")


@dataclass(frozen=True)
class RouteMetadata:
    """Human-readable route name and API version token."""

    name: str = ""
    version: str = ""


def extract_route_metadata(route: Optional[Any]) -> RouteMetadata:
    """
    Derive name and version from a matched route.

    The version is the first segment of the path template when it looks
    like ``v1``, ``v2``...; a missing route yields empty fields.
    """
    if route is None:
        return RouteMetadata()

    name = getattr(route, "name", None) or ""
    template = getattr(route, "path_format", None) or getattr(route, "path", None) or ""

    version = ""
    first_segment = template.strip("/").split("/")[0]
    if _VERSION_SEGMENT.match(first_segment):
        version = first_segment

    return RouteMetadata(name=name, version=version)
