"""Tests for config module."""


def test_load_default_config(temp_config_dir):
    from trackclient.config import load_config
    config = load_config()
    assert config["server_url"] is None
    assert config["token"] is None
    assert config["last_sync_success"] is True


def test_save_and_load_config(temp_config_dir):
    """Test saving and loading config."""
    from trackclient.config import load_config, save_config

    save_config({"server_url": "http://localhost:8000", "token": "abc"})
    config = load_config()

    assert config["server_url"] == "http://localhost:8000"
    assert config["token"] == "abc"
    assert config["device_id"] is None


def test_set_config_value(temp_config_dir):
    from trackclient.config import get_config_value, set_config_value

    set_config_value("device_id", "dev-9")
    assert get_config_value("device_id") == "dev-9"


def test_corrupt_config_falls_back_to_defaults(temp_config_dir):
    from trackclient.config import CONFIG_PATH, load_config

    CONFIG_PATH.write_text("{not json")
    assert load_config()["server_url"] is None


def test_mask_secret():
    from trackclient.config import mask_secret

    assert mask_secret(None) is None
    assert mask_secret("short") == "***"
    assert mask_secret("abcdefghijkl") == "abcdefgh..."
