"""Dependency verification module for the file converter service.

This module provides functions to verify that the external tools the
converters shell out to are installed and available.
"""

import asyncio
import shutil
import sys
from typing import Dict, Optional, Tuple

from .config import config
from .logging_config import DependencyError


async def _first_output_line(*cmd: str) -> str:
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, _ = await proc.communicate()
    return stdout.decode(errors="replace").strip().split("\n")[0]


async def check_ffmpeg(executable: Optional[str] = None) -> Tuple[bool, str]:
    """Check if FFmpeg is installed and return version information.

    Returns:
        Tuple of (is_installed: bool, message: str)
    """
    executable = executable or config.ffmpeg_path
    if not shutil.which(executable):
        return False, (
            "FFmpeg not found. Install with:\n"
            "  Ubuntu/Debian: sudo apt install ffmpeg\n"
            "  Fedora/RHEL: sudo dnf install ffmpeg\n"
            "  macOS: brew install ffmpeg\n"
            "  Windows: Download from https://ffmpeg.org/download.html"
        )

    return True, await _first_output_line(executable, "-version")


async def check_libreoffice(executable: Optional[str] = None) -> Tuple[bool, str]:
    """Check if the LibreOffice ``soffice`` binary is available.

    Returns:
        Tuple of (is_installed: bool, message: str)
    """
    executable = executable or config.soffice_path
    if not shutil.which(executable):
        return False, (
            "LibreOffice not found. Install with:\n"
            "  Ubuntu/Debian: sudo apt install libreoffice-writer\n"
            "  Fedora/RHEL: sudo dnf install libreoffice-writer\n"
            "  macOS: brew install --cask libreoffice"
        )

    return True, await _first_output_line(executable, "--version")


async def check_python_version() -> Tuple[bool, str]:
    """Check if Python version meets requirements.

    Returns:
        Tuple of (is_compatible: bool, message: str)
    """
    py_version = sys.version_info
    py_ok = tuple(py_version[:2]) >= (3, 10)

    message = f"Python {py_version[0]}.{py_version[1]}.{py_version[2]}"
    if not py_ok:
        message += " - Requires Python 3.10+"

    return py_ok, message


async def verify_dependencies(strict: bool = False) -> Dict[str, Dict]:
    """Verify all system dependencies and return status.

    Args:
        strict: Raise DependencyError for a missing tool instead of only
            reporting it. An outdated Python always raises.

    Raises:
        DependencyError: If a critical dependency is missing

    Returns:
        Dictionary with dependency status for:
        - ffmpeg: installed status and message
        - libreoffice: installed status and message
        - python: version compatibility and message
    """
    results = {}

    ffmpeg_ok, ffmpeg_msg = await check_ffmpeg()
    results["ffmpeg"] = {"installed": ffmpeg_ok, "message": ffmpeg_msg}

    soffice_ok, soffice_msg = await check_libreoffice()
    results["libreoffice"] = {"installed": soffice_ok, "message": soffice_msg}

    py_ok, py_msg = await check_python_version()
    results["python"] = {"compatible": py_ok, "message": py_msg}

    if not py_ok:
        raise DependencyError(f"Python version too old: {py_msg}")

    if strict and not ffmpeg_ok:
        raise DependencyError(f"FFmpeg required: {ffmpeg_msg}")

    if strict and not soffice_ok:
        raise DependencyError(f"LibreOffice required: {soffice_msg}")

    return results
