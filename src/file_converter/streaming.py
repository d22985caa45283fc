"""Stream converted files back to HTTP clients and clean up afterwards."""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Iterable

from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from .file_manager import cleanup_files
from .logging_config import get_logger
from .orchestrator import ConversionResult

logger = get_logger("streaming")

CHUNK_SIZE = 64 * 1024


async def iter_file(path: Path, cleanup_paths: Iterable[Path]) -> AsyncIterator[bytes]:
    """Yield ``path`` in chunks, removing ``cleanup_paths`` once iteration stops.

    The ``finally`` runs on normal exhaustion as well as when the generator
    is closed early because the client went away.
    """
    try:
        with open(path, "rb") as handle:
            while chunk := await asyncio.to_thread(handle.read, CHUNK_SIZE):
                yield chunk
    finally:
        removed = cleanup_files(cleanup_paths)
        logger.debug(f"Cleaned up {len(removed)} file(s) after streaming {path.name}")


def content_disposition(filename: str) -> str:
    return f"attachment; filename={filename}"


def stream_conversion_result(
    result: ConversionResult, cleanup_paths: Iterable[Path]
) -> StreamingResponse:
    """
    Build the response that streams a converted file to the client.

    Args:
        result: Successful conversion to send
        cleanup_paths: Temp files to remove once streaming finishes or aborts

    Returns:
        StreamingResponse with Content-Type and Content-Disposition set

    Raises:
        OSError: If the output file cannot be inspected
    """
    paths = list(cleanup_paths)
    size = result.output_path.stat().st_size

    headers = {
        "Content-Type": result.mime_type,
        "Content-Disposition": content_disposition(result.suggested_filename),
        "Content-Length": str(size),
    }

    # The background task covers a disconnect before the body iterator starts.
    return StreamingResponse(
        iter_file(result.output_path, paths),
        headers=headers,
        background=BackgroundTask(cleanup_files, paths),
    )
