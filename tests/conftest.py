"""Pytest configuration and fixtures for file converter tests."""

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import Generator, Optional

import pytest

from file_converter.config import ConverterConfig
from file_converter.file_manager import FileManager
from file_converter.formats import FormatCategory, default_registry
from file_converter.orchestrator import ConversionOrchestrator

pytest_plugins = ["pytest_asyncio"]


class FakeConverter:
    """Converter double that records calls and echoes the input to the output."""

    def __init__(
        self,
        payload: Optional[bytes] = None,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
    ):
        self.payload = payload
        self.error = error
        self.delay = delay
        self.calls: list[tuple[Path, Path, str]] = []

    async def convert(self, input_path: Path, output_path: Path, target_format: str) -> Path:
        self.calls.append((Path(input_path), Path(output_path), target_format))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        data = self.payload if self.payload is not None else Path(input_path).read_bytes()
        Path(output_path).write_bytes(data)
        return Path(output_path)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def upload_dir(temp_dir: Path) -> Path:
    """Private upload directory used by the service under test."""
    path = temp_dir / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def file_manager(upload_dir: Path) -> FileManager:
    return FileManager(upload_dir)


@pytest.fixture
def fake_converters() -> dict[FormatCategory, FakeConverter]:
    """One recording converter per format category."""
    return {category: FakeConverter() for category in FormatCategory}


@pytest.fixture
def orchestrator(file_manager, fake_converters) -> ConversionOrchestrator:
    return ConversionOrchestrator(default_registry, fake_converters, file_manager)


@pytest.fixture
def app(upload_dir, orchestrator):
    """FastAPI app wired with fake converters and a private upload directory."""
    from file_converter.server import create_app

    return create_app(ConverterConfig(upload_dir=upload_dir), orchestrator)


@pytest.fixture
def client(app):
    """Test client that does not run the lifespan (no dependency probing)."""
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def sample_text_file(temp_dir: Path) -> Path:
    """Create a sample text file for testing."""
    text_file = temp_dir / "sample.txt"
    text_file.write_text("Hello, World!")
    return text_file


@pytest.fixture
def sample_image_file(temp_dir: Path) -> Path:
    """Create a sample PNG image file for testing."""
    from PIL import Image

    image_file = temp_dir / "sample.png"
    img = Image.new("RGBA", (64, 48), color=(255, 0, 0, 128))
    img.save(image_file)
    return image_file


@pytest.fixture
def sample_mp3_file(temp_dir: Path) -> Path:
    """Generate a one second MP3 tone with FFmpeg, skipping when FFmpeg is absent."""
    import subprocess

    if not shutil.which("ffmpeg"):
        pytest.skip("ffmpeg not installed")

    mp3_file = temp_dir / "sample.mp3"
    subprocess.run(
        [
            "ffmpeg",
            "-y",
            "-f",
            "lavfi",
            "-i",
            "sine=frequency=440:duration=1",
            "-acodec",
            "libmp3lame",
            str(mp3_file),
        ],
        check=True,
        capture_output=True,
    )
    return mp3_file


def files_in(directory: Path) -> list[Path]:
    """List regular files left in a directory."""
    return sorted(p for p in directory.iterdir() if p.is_file())
