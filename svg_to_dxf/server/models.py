"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and OpenAPI documentation. Pydantic enforces
field types at runtime and the generated JSON Schema shows up in /docs.

HOW: ConversionForm mirrors ConversionOptions as form fields sent next
to the uploaded SVG. Error responses share one schema that can carry
the tool's exit code and stderr.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Unit values match svg_to_dxf.options.Unit exactly
- ErrorResponse.kind is an ErrorKind value
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from svg_to_dxf import config
from svg_to_dxf.options import ConversionOptions, Unit


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ConversionForm(BaseModel):
    """Conversion settings sent as form data alongside the SVG upload."""

    use_polyline: bool = Field(
        default=False,
        description="Emit LWPOLYLINE entities instead of LINE segments.",
    )
    flatten_beziers: bool = Field(
        default=False,
        description="Flatten Bezier curves to line segments.",
    )
    robo_master: bool = Field(
        default=False,
        description="ROBO-Master compatible spline output.",
    )
    units: Unit = Field(
        default=Unit.PX,
        description="Output units, used only when unit_from_document is false.",
    )
    unit_from_document: bool = Field(
        default=True,
        description="Take units from the SVG document instead of 'units'.",
    )
    encoding: str = Field(
        default=config.DEFAULT_ENCODING,
        min_length=1,
        description="Character encoding of the DXF output.",
    )

    def to_options(self) -> ConversionOptions:
        return ConversionOptions(
            use_polyline=self.use_polyline,
            flatten_beziers=self.flatten_beziers,
            robo_master=self.robo_master,
            units=self.units,
            unit_from_document=self.unit_from_document,
            encoding=self.encoding,
        )


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""

    detail: str = Field(description="Human-readable error message.")
    kind: Optional[str] = Field(
        default=None,
        description="Machine-readable failure category (ErrorKind value).",
    )
    exit_code: Optional[int] = Field(
        default=None,
        description="Exit code of dxf_outlines, only for conversion failures.",
    )
    stderr: Optional[str] = Field(
        default=None,
        description="Captured dxf_outlines diagnostics, only for conversion failures.",
    )


class HealthResponse(BaseModel):
    """Service health and native tool status."""

    status: str = Field(description="'ok' when a usable executable was found, else 'unavailable'.")
    version: str = Field(description="svg_to_dxf package version.")
    platform: Optional[str] = Field(
        default=None,
        description="Runtime identifier of this machine (e.g. linux-x64).",
    )
    executable: Optional[str] = Field(
        default=None,
        description="Path of the dxf_outlines executable in use.",
    )
    warmed_up: bool = Field(description="Whether the one-time warmup has completed.")
    error: Optional[str] = Field(
        default=None,
        description="Why the executable is unavailable, if it is.",
    )


class UnitsResponse(BaseModel):
    """Supported output units."""

    units: List[str] = Field(description="Unit identifiers accepted by 'units'.")
    default: str = Field(description="Unit used when none is given.")
