"""
Configuration Tests
===================
"""

import os
from pathlib import Path

import pytest

from frame_studio.config import Settings, load_env_file
from frame_studio.quota import QuotaScope
from style_transfer.styles import RegenerationEngine


def test_defaults():
    settings = Settings.from_env({})
    assert settings.api_key is None
    assert settings.regen_limit == 10
    assert settings.regen_scope is QuotaScope.DAILY
    assert settings.describe_scope is QuotaScope.SESSION
    assert settings.call_delay == 1.5
    assert settings.engine is RegenerationEngine.STYLE_TRANSFER


def test_overrides():
    settings = Settings.from_env(
        {
            "GOOGLE_API_KEY": "k",
            "FRAMESTUDIO_REGEN_LIMIT": "3",
            "FRAMESTUDIO_REGEN_SCOPE": "Session",
            "FRAMESTUDIO_CALL_DELAY": "0",
            "FRAMESTUDIO_ENGINE": "reimagine",
            "FRAMESTUDIO_QUOTA_PATH": "/tmp/q.json",
            "FRAMESTUDIO_LOG_LEVEL": "debug",
        }
    )
    assert settings.api_key == "k"
    assert settings.regen_limit == 3
    assert settings.regen_scope is QuotaScope.SESSION
    assert settings.call_delay == 0.0
    assert settings.engine is RegenerationEngine.REIMAGINE
    assert settings.quota_path == Path("/tmp/q.json")
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [{"FRAMESTUDIO_REGEN_LIMIT": "ten"}, {"FRAMESTUDIO_DESCRIBE_SCOPE": "weekly"}],
)
def test_invalid_values(env):
    with pytest.raises(ValueError):
        Settings.from_env(env)


def test_env_file_does_not_override(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text('# comment\nFRAMESTUDIO_TEST_A="from-file"\nFRAMESTUDIO_TEST_B=file\n')
    monkeypatch.setenv("FRAMESTUDIO_TEST_B", "from-env")
    # Register the key with monkeypatch so teardown removes what the loader sets.
    monkeypatch.setenv("FRAMESTUDIO_TEST_A", "placeholder")
    monkeypatch.delenv("FRAMESTUDIO_TEST_A")

    load_env_file([env_file, tmp_path / "missing.env"])

    assert os.environ["FRAMESTUDIO_TEST_A"] == "from-file"
    assert os.environ["FRAMESTUDIO_TEST_B"] == "from-env"
