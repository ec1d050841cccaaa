# tests/core/test_config.py
"""
Tests for the Config class.
"""

import pytest

from virtkube.core.config import Config


def test_defaults():
    config = Config()
    assert config.PROVIDER_TYPE == "kubevirt"
    assert config.PROVIDER_API == "kubevirt.provider.extensions.gardener.cloud/v1alpha1"
    assert config.POOL_HASH_LENGTH == 5
    config.validate_instance()


def test_pool_hash_length_is_read_at_call_time(monkeypatch):
    config = Config()
    monkeypatch.setenv("POOL_HASH_LENGTH", "12")
    assert config.POOL_HASH_LENGTH == 12


@pytest.mark.parametrize("length", ["0", "65"])
def test_validate_rejects_bad_hash_length(monkeypatch, length):
    monkeypatch.setenv("POOL_HASH_LENGTH", length)
    with pytest.raises(ValueError, match="POOL_HASH_LENGTH"):
        Config().validate_instance()


def test_validate_rejects_bad_log_level(monkeypatch):
    config = Config()
    monkeypatch.setattr(config, "LOG_LEVEL", "LOUD")
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        config.validate_instance()


def test_validate_warns_on_unusual_access_mode(monkeypatch, caplog):
    config = Config()
    monkeypatch.setattr(config, "DEFAULT_VOLUME_ACCESS_MODE", "ReadWriteSometimes")
    config.validate_instance()
    assert "ReadWriteSometimes" in caplog.text
