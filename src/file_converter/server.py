"""HTTP server for file conversion.

This module provides a FastAPI application exposing a single ``POST /convert``
endpoint that accepts an uploaded file plus a target format and streams the
converted file back.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, File, Form, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import ConverterConfig, config
from .deps import verify_dependencies
from .file_manager import cleanup_files
from .logging_config import (
    ConverterError,
    UserError,
    get_logger,
    log_error,
    setup_logging,
)
from .monitor import ResourceMonitor
from .orchestrator import (
    ConversionOrchestrator,
    ConversionRequest,
    ConversionResult,
    build_orchestrator,
)
from .streaming import stream_conversion_result
from .upload import StoredUpload, UploadReceiver

logger = get_logger("server")

router = APIRouter()


def error_payload(error: Exception) -> dict[str, Any]:
    """JSON body for a failed request.

    Converter errors render themselves; anything unexpected is reported as a
    conversion failure.
    """
    if isinstance(error, ConverterError):
        return error.to_dict()
    return {
        "error": str(error) or "Conversion failed",
        "details": f"{type(error).__name__}: {error}",
        "kind": "conversion_failure",
    }


@router.post("/convert")
async def convert_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    target_format: Optional[str] = Form(None, alias="targetFormat"),
):
    """Convert an uploaded file to ``targetFormat`` and stream it back.

    Returns:
        200 with the converted file as an attachment,
        400 ``{"error": "No file uploaded"}`` when the file field is missing,
        500 ``{"error", "details", "kind"}`` for any other failure.
    """
    receiver: UploadReceiver = request.app.state.receiver
    orchestrator: ConversionOrchestrator = request.app.state.orchestrator

    stored: Optional[StoredUpload] = None
    result: Optional[ConversionResult] = None
    handed_off = False

    try:
        stored = await receiver.receive(file)
        result = await orchestrator.convert(
            ConversionRequest(
                source_path=stored.path,
                original_filename=stored.original_filename,
                target_format=target_format or "",
            )
        )
        response = stream_conversion_result(result, [stored.path, result.output_path])
        handed_off = True
        return response

    except Exception as e:
        if isinstance(e, UserError):
            logger.warning(f"Rejected request: {e}")
        else:
            log_error(logger, e)
        status_code = (
            e.status_code
            if isinstance(e, ConverterError)
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        return JSONResponse(status_code=status_code, content=error_payload(e))

    finally:
        # Covers cancellation too; once streaming starts the response owns the files.
        if not handed_off:
            cleanup_files(
                [
                    stored.path if stored else None,
                    result.output_path if result else None,
                ]
            )


def create_app(
    cfg: Optional[ConverterConfig] = None,
    orchestrator: Optional[ConversionOrchestrator] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cfg: Service configuration (default: loaded from the environment)
        orchestrator: Orchestrator to dispatch conversions to; built from
            ``cfg`` with the production converters when omitted

    Returns:
        Configured FastAPI application
    """
    cfg = cfg or config
    orchestrator = orchestrator or build_orchestrator(cfg)
    upload_dir = orchestrator.file_manager.ensure_upload_dir()
    resource_monitor = ResourceMonitor(cfg.min_free_disk_mb)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting File Converter service...")
        logger.info(f"Upload directory: {upload_dir}")
        resource_monitor.log_disk_space(upload_dir)
        logger.info("Verifying system dependencies...")
        deps = await verify_dependencies(strict=cfg.require_dependencies)
        for name in ("ffmpeg", "libreoffice"):
            if deps[name]["installed"]:
                logger.info(f"{name}: {deps[name]['message']}")
            else:
                logger.warning(
                    f"{name} unavailable, its conversions will fail: {deps[name]['message']}"
                )

        yield

        logger.info("Server shutdown complete")

    app = FastAPI(
        title="File Converter",
        version=__version__,
        description="Convert uploaded audio, document and image files to another format.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    app.state.orchestrator = orchestrator
    app.state.receiver = UploadReceiver(
        orchestrator.file_manager,
        max_upload_mb=cfg.max_upload_mb,
        monitor=resource_monitor,
    )
    app.include_router(router)

    return app


app = create_app()


def main():
    """Main entry point: serve the application with uvicorn."""
    import uvicorn

    setup_logging(config.log_level, str(config.log_file) if config.log_file else None)

    try:
        logger.info(f"Server running at http://{config.host}:{config.port}")
        uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Server stopped")


if __name__ == "__main__":
    main()
