"""Tests for credential resolution and logging setup."""

import logging
from unittest.mock import patch

from ..utils.env import load_api_key, setup_logging


class TestLoadApiKey:
    """Environment, then keyring, then .env file."""
    
    def test_environment_first(self, monkeypatch):
        monkeypatch.setenv("AI_SERVICE_API_KEY", "from-env")
        with patch("keyring.get_password", return_value="from-keyring") as get_password:
            assert load_api_key("AI_SERVICE_API_KEY") == "from-env"
        get_password.assert_not_called()
    
    def test_keyring_second(self, monkeypatch):
        monkeypatch.delenv("AI_SERVICE_API_KEY", raising=False)
        with patch("keyring.get_password", return_value="from-keyring"):
            assert load_api_key("AI_SERVICE_API_KEY") == "from-keyring"
    
    def test_env_file_last(self, monkeypatch, tmp_path):
        monkeypatch.delenv("AI_SERVICE_API_KEY", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("# keys\nOTHER=1\nAI_SERVICE_API_KEY=\"from-file\"\n")
        with patch("keyring.get_password", return_value=None):
            assert load_api_key("AI_SERVICE_API_KEY", env_file=env_file) == "from-file"
    
    def test_missing(self, monkeypatch, tmp_path):
        monkeypatch.delenv("AI_SERVICE_API_KEY", raising=False)
        with patch("keyring.get_password", return_value=None):
            assert load_api_key("AI_SERVICE_API_KEY", env_file=tmp_path / ".env") is None


def test_setup_logging_writes_file(tmp_path):
    log_file = tmp_path / "run.log"
    setup_logging(logging.DEBUG, log_file=str(log_file))
    logging.getLogger("media_orchestrator.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello" in log_file.read_text()
    setup_logging(logging.WARNING, log_file=None)
