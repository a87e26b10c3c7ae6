import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from tracker.config import Settings
from tracker.errors import ValidationError
from tracker.logconfig import configure_logging


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})
    assert settings.extraction_model == "gpt-4o-mini"
    assert settings.sweep_interval == 60.0
    assert settings.http_timeout == 30.0
    assert settings.log_level == "WARNING"
    assert not settings.has_remote_store


def test_values_from_environment():
    settings = Settings.from_env({
        "SUPABASE_URL": "https://demo.supabase.co",
        "SUPABASE_ANON_KEY": "anon",
        "TRACKER_USER_ID": "user-1",
        "TRACKER_SWEEP_INTERVAL": "15",
        "TRACKER_LOG_LEVEL": "debug",
        "TRACKER_EXTRACTION_MODEL": "gpt-4o",
    })
    assert settings.has_remote_store
    assert settings.sweep_interval == 15.0
    assert settings.log_level == "DEBUG"
    assert settings.extraction_model == "gpt-4o"


def test_remote_store_needs_a_user():
    settings = Settings.from_env({"SUPABASE_URL": "https://demo.supabase.co", "SUPABASE_ANON_KEY": "anon"})
    assert not settings.has_remote_store


def test_bad_number_is_a_validation_error():
    with pytest.raises(ValidationError, match="TRACKER_HTTP_TIMEOUT"):
        Settings.from_env({"TRACKER_HTTP_TIMEOUT": "soon"})


def test_configure_logging_installs_rich_handler():
    configure_logging("info", console=Console(file=None, force_terminal=False))
    logger = logging.getLogger("tracker")
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], RichHandler)

    configure_logging("warning")
    assert len(logger.handlers) == 1
