"""Conversion options and their command-line encoding.

WHY: dxf_outlines takes its settings as flag/value pairs in a fixed
order, with booleans spelled out as "true"/"false" rather than present
or absent switches. Callers should work with a typed, immutable value
instead of hand-building argument lists.

HOW: ConversionOptions is a frozen dataclass with the tool's defaults.
encode_options() walks the fields in the tool's grammar order and emits
the argument list.

RULES:
- Order is fixed: --POLY, --FLATTENBEZ, --ROBO, --unit_from_document,
  [--units], --encoding
- Booleans are always followed by "true" or "false"
- --units is only emitted when unit_from_document is False
- units is validated at construction; encoding is passed through as-is
"""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass
from typing import List, Union

from svg_to_dxf import config
from svg_to_dxf.errors import InvalidArgumentError


class Unit(str, enum.Enum):
    """Output units understood by dxf_outlines."""

    PX = "px"
    IN = "in"
    FT = "ft"
    MM = "mm"
    CM = "cm"
    M = "m"


@dataclass(frozen=True)
class ConversionOptions:
    """Settings for one SVG → DXF conversion.

    RULES:
    - use_polyline: LWPOLYLINE output instead of LINE segments (--POLY)
    - flatten_beziers: flatten Bezier curves to line segments (--FLATTENBEZ)
    - robo_master: ROBO-Master compatible spline output (--ROBO)
    - units: output units, only used when unit_from_document is False
    - unit_from_document: take units from the SVG document (default True)
    - encoding: character encoding of the DXF output (default latin_1)
    """

    use_polyline: bool = False
    flatten_beziers: bool = False
    robo_master: bool = False
    units: Union[Unit, str] = Unit.PX
    unit_from_document: bool = True
    encoding: str = config.DEFAULT_ENCODING

    def __post_init__(self) -> None:
        try:
            unit = Unit(self.units)
        except ValueError:
            raise InvalidArgumentError(
                "Unsupported units {!r}. Valid values: {}".format(
                    self.units, ", ".join(u.value for u in Unit)
                )
            ) from None
        object.__setattr__(self, "units", unit)

        if not isinstance(self.encoding, str) or not self.encoding.strip():
            raise InvalidArgumentError("encoding must be a non-empty string")

    @classmethod
    def default(cls) -> ConversionOptions:
        return cls()

    def replace(self, **changes) -> ConversionOptions:
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_arguments(self) -> List[str]:
        return encode_options(self)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def encode_options(options: ConversionOptions) -> List[str]:
    """Build the dxf_outlines argument list for a set of options.

    Args:
        options: The conversion settings.

    Returns:
        A new list of flag/value strings in the tool's expected order.
    """
    args = [
        "--POLY", _flag(options.use_polyline),
        "--FLATTENBEZ", _flag(options.flatten_beziers),
        "--ROBO", _flag(options.robo_master),
        "--unit_from_document", _flag(options.unit_from_document),
    ]

    if not options.unit_from_document:
        args.extend(["--units", Unit(options.units).value])

    args.extend(["--encoding", options.encoding])
    return args
