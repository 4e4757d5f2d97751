"""FastAPI application exposing SVG → DXF conversion over HTTP.

WHY: Web front-ends and automation tools (curl, n8n, CAD pipelines) need
to convert drawings without a local Python install. A small HTTP
service around SvgToDxfConverter gives them that, with OpenAPI docs.

HOW: One FastAPI app with three endpoints. POST /convert takes a
multipart SVG upload plus form fields mirroring ConversionOptions and
returns the DXF bytes. The converter is a lazily created singleton
provided through a dependency so tests can override it. SvgToDxfError
subclasses are mapped to HTTP status codes by one exception handler.
The app warms the native binary up in the background at startup.

RULES:
- ConversionError → 422 with exit_code and stderr in the body
- InvalidArgumentError → 400
- ExecutableNotFoundError / UnsupportedPlatformError → 503
- ConversionTimeoutError → 504
- Only .svg uploads are accepted (files without a name are allowed)
- Converted files are never stored on the server
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from svg_to_dxf import __version__, config
from svg_to_dxf.converter import SvgToDxfConverter
from svg_to_dxf.errors import ErrorKind, SvgToDxfError, UnsupportedPlatformError
from svg_to_dxf.options import Unit
from svg_to_dxf.runtime import current_platform
from svg_to_dxf.server.models import (
    ConversionForm,
    ErrorResponse,
    HealthResponse,
    UnitsResponse,
)

logger = logging.getLogger(__name__)

DXF_MEDIA_TYPE = "application/dxf"

_STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.CONVERSION_FAILED: 422,
    ErrorKind.EXECUTABLE_NOT_FOUND: 503,
    ErrorKind.UNSUPPORTED_PLATFORM: 503,
    ErrorKind.TIMEOUT: 504,
}

# ---------------------------------------------------------------------------
# Converter singleton
# ---------------------------------------------------------------------------

_converter: Optional[SvgToDxfConverter] = None


def get_converter() -> SvgToDxfConverter:
    """Return the shared converter, creating it on first use.

    RULES:
    - Raises ExecutableNotFoundError / UnsupportedPlatformError when no
      binary is usable; a later call retries the resolution
    """
    global _converter
    if _converter is None:
        _converter = SvgToDxfConverter()
    return _converter


async def _warm_up_on_startup() -> None:
    """Trigger the one-time extraction so the first request is fast."""
    try:
        converter = get_converter()
        await converter.warmup.ensure_warmed_up(converter.executable_path)
    except (SvgToDxfError, OSError):
        logger.warning("Startup warmup failed; conversions will retry it", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start background warmup on startup, cancel it on shutdown."""
    config.configure_logging()
    task = asyncio.create_task(_warm_up_on_startup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="SVG to DXF Converter API",
    description=(
        "Convert SVG drawings to DXF using the bundled dxf_outlines tool. "
        "Upload an SVG, choose output options, and receive the DXF file."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(SvgToDxfError)
async def _handle_conversion_error(request: Request, exc: SvgToDxfError) -> JSONResponse:
    status_code = _STATUS_BY_KIND.get(exc.kind, 500)
    body = ErrorResponse(
        detail=str(exc),
        kind=exc.kind.value,
        exit_code=getattr(exc, "exit_code", None),
        stderr=getattr(exc, "stderr", None),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _validate_file_extension(filename: Optional[str]) -> None:
    """Raise HTTPException if the upload is not an .svg file."""
    if not filename:
        return
    ext = Path(filename).suffix.lower()
    if ext != ".svg":
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'. Upload an .svg file.".format(ext),
        )


def _dxf_filename(filename: Optional[str]) -> str:
    stem = Path(filename).stem if filename else "drawing"
    return "{}.dxf".format(stem or "drawing")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.post(
    "/convert",
    tags=["Conversion"],
    summary="Convert an SVG upload to DXF",
    response_class=Response,
    responses={
        200: {"content": {DXF_MEDIA_TYPE: {}}, "description": "The converted DXF file."},
        400: {"model": ErrorResponse, "description": "Invalid upload or options."},
        422: {"model": ErrorResponse, "description": "dxf_outlines rejected the input."},
        503: {"model": ErrorResponse, "description": "No usable native executable."},
        504: {"model": ErrorResponse, "description": "Conversion timed out."},
    },
)
async def convert(
    file: Annotated[UploadFile, File(description="SVG document to convert.")],
    converter: Annotated[SvgToDxfConverter, Depends(get_converter)],
    use_polyline: Annotated[bool, Form(description="Emit LWPOLYLINE entities.")] = False,
    flatten_beziers: Annotated[bool, Form(description="Flatten Bezier curves.")] = False,
    robo_master: Annotated[bool, Form(description="ROBO-Master spline output.")] = False,
    units: Annotated[Unit, Form(description="Output units.")] = Unit.PX,
    unit_from_document: Annotated[bool, Form(description="Use the SVG's own units.")] = True,
    encoding: Annotated[str, Form(description="DXF output encoding.")] = config.DEFAULT_ENCODING,
) -> Response:
    """Run dxf_outlines on the uploaded SVG and return the DXF bytes."""
    _validate_file_extension(file.filename)

    form = ConversionForm(
        use_polyline=use_polyline,
        flatten_beziers=flatten_beziers,
        robo_master=robo_master,
        units=units,
        unit_from_document=unit_from_document,
        encoding=encoding,
    )
    svg_bytes = await file.read()
    if not svg_bytes:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")

    dxf_bytes = await converter.convert(svg_bytes, form.to_options())

    return Response(
        content=dxf_bytes,
        media_type=DXF_MEDIA_TYPE,
        headers={
            "Content-Disposition": 'attachment; filename="{}"'.format(
                _dxf_filename(file.filename)
            )
        },
    )


@app.get(
    "/health",
    tags=["Service"],
    summary="Service and native tool status",
    response_model=HealthResponse,
)
async def health() -> HealthResponse:
    """Report whether a usable dxf_outlines executable is available."""
    try:
        platform_suffix: Optional[str] = current_platform().suffix
    except UnsupportedPlatformError:
        platform_suffix = None

    try:
        converter = get_converter()
    except SvgToDxfError as exc:
        return HealthResponse(
            status="unavailable",
            version=__version__,
            platform=platform_suffix,
            warmed_up=False,
            error=str(exc),
        )

    return HealthResponse(
        status="ok",
        version=__version__,
        platform=platform_suffix,
        executable=str(converter.executable_path),
        warmed_up=converter.warmup.warmed_up,
    )


@app.get(
    "/units",
    tags=["Conversion"],
    summary="List supported output units",
    response_model=UnitsResponse,
)
async def list_units() -> UnitsResponse:
    return UnitsResponse(units=[u.value for u in Unit], default=Unit.PX.value)
