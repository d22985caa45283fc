"""Tests for configuration management."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

from file_converter.config import ConverterConfig, config
from file_converter.formats import FormatCategory


class TestConverterConfig:
    """Tests for ConverterConfig class."""

    def test_default_values(self):
        """Test default configuration values."""
        cfg = ConverterConfig()

        assert cfg.host == "0.0.0.0"
        assert cfg.port == 3571
        assert cfg.max_upload_mb == 0
        assert cfg.min_free_disk_mb == 100
        assert cfg.audio_timeout == 1800
        assert cfg.document_timeout == 600
        assert cfg.image_timeout == 300
        assert cfg.ffmpeg_path == "ffmpeg"
        assert cfg.soffice_path == "soffice"
        assert cfg.require_dependencies is False
        assert cfg.log_level == "INFO"
        assert cfg.log_file is None

    def test_default_upload_dir_is_under_tempdir(self):
        """The default upload directory lives in the system temp directory."""
        cfg = ConverterConfig()

        assert cfg.upload_dir == Path(tempfile.gettempdir()) / "file-converter" / "uploads"

    def test_max_concurrent_defaults_to_cpu_count(self):
        """Test max_concurrent defaults based on CPU count."""
        cfg = ConverterConfig()

        expected = min(4, os.cpu_count() or 4)
        assert cfg.max_concurrent == expected

    def test_custom_values(self):
        """Test custom configuration values."""
        cfg = ConverterConfig(port=8080, max_concurrent=8, audio_timeout=60)

        assert cfg.port == 8080
        assert cfg.max_concurrent == 8
        assert cfg.audio_timeout == 60

    def test_from_env(self):
        """Test loading configuration from environment variables."""
        with patch.dict(
            os.environ,
            {
                "CONVERTER_PORT": "9000",
                "CONVERTER_UPLOAD_DIR": "/srv/uploads",
                "CONVERTER_MAX_UPLOAD_MB": "50",
                "CONVERTER_MIN_FREE_DISK_MB": "0",
                "CONVERTER_MAX_CONCURRENT": "8",
                "CONVERTER_AUDIO_TIMEOUT": "90",
                "CONVERTER_SOFFICE_PATH": "/opt/libreoffice/program/soffice",
                "CONVERTER_REQUIRE_DEPENDENCIES": "true",
                "CONVERTER_LOG_LEVEL": "DEBUG",
            },
        ):
            cfg = ConverterConfig.from_env()

            assert cfg.port == 9000
            assert cfg.upload_dir == Path("/srv/uploads")
            assert cfg.max_upload_mb == 50
            assert cfg.min_free_disk_mb == 0
            assert cfg.max_concurrent == 8
            assert cfg.audio_timeout == 90
            assert cfg.soffice_path == "/opt/libreoffice/program/soffice"
            assert cfg.require_dependencies is True
            assert cfg.log_level == "DEBUG"

    def test_get_timeout_for_category(self):
        """Test timeout resolution for different categories."""
        cfg = ConverterConfig(audio_timeout=10, document_timeout=20, image_timeout=30)

        assert cfg.get_timeout_for_category(FormatCategory.AUDIO) == 10
        assert cfg.get_timeout_for_category(FormatCategory.DOCUMENT) == 20
        assert cfg.get_timeout_for_category(FormatCategory.IMAGE) == 30

    def test_global_config_instance(self):
        """Test global config instance exists."""
        assert config is not None
        assert isinstance(config, ConverterConfig)

    def test_path_conversion(self, tmp_path):
        """Test path string conversion."""
        upload_dir = str(tmp_path / "uploads")
        log_file = str(tmp_path / "converter.log")

        cfg = ConverterConfig(upload_dir=upload_dir, log_file=log_file)

        assert cfg.upload_dir == Path(upload_dir)
        assert cfg.log_file == Path(log_file)
