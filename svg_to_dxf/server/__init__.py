"""HTTP API package: FastAPI app exposing the converter over HTTP.

WHY: Some callers cannot run Python locally but can send an HTTP
request. This package wraps SvgToDxfConverter in a small FastAPI app.

HOW: app.py defines the routes and error mapping; models.py holds the
Pydantic schemas. Run with ``uvicorn svg_to_dxf.server.app:app``.
"""
