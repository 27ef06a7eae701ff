"""FastAPI application: upload a ``.bak`` file, get SQLite or JSON back.

Routes:
    POST /sqlite        multipart field ``bak`` -> SQLite file attachment
    POST /json          multipart field ``bak`` -> JSON document
    GET  /upload-form   HTML form posting to /sqlite
    GET  /              banner
"""

import asyncio
import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response

from bak_converter.config.loader import load_config
from bak_converter.config.models import ConverterConfig
from bak_converter.errors import ConverterError, UploadRejected, UploadTooLarge
from bak_converter.export.types import ExportFormat
from bak_converter.pipeline.controller import convert_backup
from bak_converter.upload import TokenAllocator, UploadedBackupFile, accept_upload

logger = logging.getLogger(__name__)

router = APIRouter()

UPLOAD_FORM = """
    <h2>Upload Form</h2>
    <form action="/sqlite" method="post" enctype="multipart/form-data">
      <div>
        <label for="file">Choose a file to upload:</label>
        <input type="file" id="bak" name="bak">
      </div>
      <button type="submit">Upload File</button>
    </form>
"""


def get_config(request: Request) -> ConverterConfig:
    return request.app.state.config


async def _store_upload(request: Request, bak: UploadFile | None) -> UploadedBackupFile:
    if bak is None:
        raise UploadRejected("No file uploaded or incorrect file type.")
    return await asyncio.to_thread(
        accept_upload,
        bak.file,
        bak.filename,
        request.app.state.config,
        request.app.state.token_allocator,
    )


@router.post("/sqlite", summary="Convert a .bak file to SQLite")
async def convert_to_sqlite(
    request: Request,
    config: Annotated[ConverterConfig, Depends(get_config)],
    bak: Annotated[UploadFile | None, File()] = None,
) -> Response:
    """Restore the uploaded backup and return it as a SQLite database file."""
    upload = await _store_upload(request, bak)
    data = await convert_backup(upload, config, ExportFormat.SQLITE)
    return Response(
        content=data,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{upload.database_name}.sqlite"'},
    )


@router.post("/json", summary="Convert a .bak file to JSON")
async def convert_to_json(
    request: Request,
    config: Annotated[ConverterConfig, Depends(get_config)],
    bak: Annotated[UploadFile | None, File()] = None,
) -> JSONResponse:
    """Restore the uploaded backup and return every table as JSON."""
    upload = await _store_upload(request, bak)
    document = await convert_backup(upload, config, ExportFormat.JSON)
    return JSONResponse(content=document)


@router.get("/upload-form", response_class=HTMLResponse)
async def upload_form() -> str:
    return UPLOAD_FORM


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return "RΞD Consultores"


# ============================================================================
# Exception handlers
# ============================================================================


async def upload_too_large_handler(request: Request, exc: UploadTooLarge) -> PlainTextResponse:
    return PlainTextResponse(str(exc), status_code=413)


async def upload_rejected_handler(request: Request, exc: UploadRejected) -> PlainTextResponse:
    return PlainTextResponse(str(exc), status_code=400)


async def converter_error_handler(request: Request, exc: ConverterError) -> PlainTextResponse:
    logger.error(
        "Conversion failed during %s in %s %s: %s",
        exc.stage,
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return PlainTextResponse(str(exc), status_code=500)


def cors_origin_regex(suffixes: list[str]) -> str:
    """Build an origin regex accepting any origin whose host ends with a suffix.

    Example:
        >>> bool(re.fullmatch(cors_origin_regex(["replit.dev"]), "https://x.replit.dev"))
        True
    """
    alternatives = "|".join(re.escape(s.lstrip(".")) for s in suffixes)
    return rf"https?://([^/]*\.)?({alternatives})(:\d+)?"


def create_app(
    config: ConverterConfig | None = None,
    title: str = "bak-converter",
    version: str = "0.1.0",
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Converter configuration (default: ``load_config()``).
        title: API title.
        version: API version.

    Returns:
        Configured FastAPI application.
    """
    config = config or load_config()

    app = FastAPI(title=title, version=version)
    app.state.config = config
    app.state.token_allocator = TokenAllocator()

    app.add_middleware(GZipMiddleware)
    if config.cors_origin_suffixes:
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=cors_origin_regex(config.cors_origin_suffixes),
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.add_exception_handler(UploadTooLarge, upload_too_large_handler)
    app.add_exception_handler(UploadRejected, upload_rejected_handler)
    app.add_exception_handler(ConverterError, converter_error_handler)

    app.include_router(router)
    return app
