"""
Tests for the process entry point.
"""
from unittest.mock import patch

import pytest

from pdf_compressor.config import ConfigurationError
from pdf_compressor.main import create_app, run

from conftest import FakeCompressor, FakeStorage, make_settings


class TestRun:

    def test_missing_configuration_exits_before_listening(self):
        with patch(
            "pdf_compressor.main.load_settings",
            side_effect=ConfigurationError(["STORAGE_BUCKET"])
        ), patch("pdf_compressor.main.configure_logging"), \
                patch("pdf_compressor.main.uvicorn.run") as uvicorn_run:
            with pytest.raises(SystemExit) as exc_info:
                run()

        assert exc_info.value.code == 1
        uvicorn_run.assert_not_called()

    def test_missing_environment_exits_before_listening(self, monkeypatch, tmp_path):
        for key in ("STORAGE_ENDPOINT_URL", "STORAGE_ACCESS_KEY", "STORAGE_SECRET_KEY", "STORAGE_BUCKET"):
            monkeypatch.delenv(key, raising=False)
        # no .env file in the working directory
        monkeypatch.chdir(tmp_path)

        with patch("pdf_compressor.main.configure_logging"), \
                patch("pdf_compressor.main.uvicorn.run") as uvicorn_run:
            with pytest.raises(SystemExit) as exc_info:
                run()

        assert exc_info.value.code == 1
        uvicorn_run.assert_not_called()

    def test_starts_uvicorn_with_configured_port(self, tmp_path):
        settings = make_settings(tmp_path, port=4321)

        with patch("pdf_compressor.main.load_settings", return_value=settings), \
                patch("pdf_compressor.main.configure_logging"), \
                patch("pdf_compressor.main.uvicorn.run") as uvicorn_run:
            run()

        uvicorn_run.assert_called_once()
        assert uvicorn_run.call_args.kwargs["port"] == 4321


class TestCreateApp:

    def test_routes_registered(self, tmp_path):
        app = create_app(make_settings(tmp_path), storage=FakeStorage(), compressor=FakeCompressor())

        paths = {route.path for route in app.routes}
        assert {"/health", "/compress-upload", "/metrics"} <= paths

    def test_context_on_app_state(self, tmp_path):
        settings = make_settings(tmp_path)
        storage = FakeStorage()
        compressor = FakeCompressor()

        app = create_app(settings, storage=storage, compressor=compressor)

        assert app.state.settings is settings
        assert app.state.compress_service.storage is storage
        assert app.state.compress_service.compressor is compressor
