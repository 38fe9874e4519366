"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from addon_updates.config import UpdaterConfig, load_config, sanitize_key
from addon_updates.errors import MissingConfiguration


def test_license_api_url_defaults_from_api_url():
    config = UpdaterConfig.from_mapping(
        {
            "site_url": "https://shop.example.com/",
            "api_url": "https://my.vendor.com/",
            "versions_api_url": "https://my.vendor.com/versions",
        }
    )

    assert config.site_url == "https://shop.example.com"
    assert config.license_api_url == "https://my.vendor.com/wp-json/hizzle/v1/licenses"
    assert config.prefix == "my_vendor_com"
    assert config.timeout == 15


def test_explicit_settings_win():
    config = UpdaterConfig.from_mapping(
        {
            "site_url": "https://shop.example.com",
            "api_url": "https://my.vendor.com",
            "license_api_url": "https://api.vendor.com/licenses",
            "versions_api_url": "https://api.vendor.com/versions",
            "option_name": "My_Plugin Updates",
            "api_headers": {"X-API-Key": "secret"},
        }
    )

    assert config.license_api_url == "https://api.vendor.com/licenses"
    assert config.prefix == "my_pluginupdates"
    assert config.api_headers == {"X-API-Key": "secret"}


@pytest.mark.parametrize(
    "data, missing",
    [
        ({"api_url": "https://v.com", "versions_api_url": "https://v.com/v"}, "site_url"),
        ({"site_url": "https://s.com", "versions_api_url": "https://v.com/v"}, "license_api_url"),
        ({"site_url": "https://s.com", "api_url": "https://v.com"}, "versions_api_url"),
    ],
)
def test_missing_required_settings(data, missing):
    with pytest.raises(MissingConfiguration) as exc_info:
        UpdaterConfig.from_mapping(data)

    assert exc_info.value.setting == missing
    assert missing in str(exc_info.value)


def test_invalid_headers_rejected():
    with pytest.raises(ValueError):
        UpdaterConfig.from_mapping(
            {
                "site_url": "https://s.com",
                "api_url": "https://v.com",
                "versions_api_url": "https://v.com/v",
                "api_headers": ["X-API-Key"],
            }
        )


def test_load_config_from_file(tmp_path: Path):
    path = tmp_path / "addon-updates.toml"
    path.write_text(
        'site_url = "https://shop.example.com"\n'
        'api_url = "https://my.vendor.com"\n'
        'versions_api_url = "https://my.vendor.com/versions"\n'
        'prefix = "acme"\n'
        "[api_headers]\n"
        'X-Requested-With = "AddonUpdates"\n'
    )

    config = load_config(path)

    assert config.prefix == "acme"
    assert config.api_headers == {"X-Requested-With": "AddonUpdates"}


def test_load_config_from_pyproject_table(tmp_path: Path):
    path = tmp_path / "pyproject.toml"
    path.write_text(
        '[project]\nname = "shop"\n'
        '[tool.addon-updates]\n'
        'site_url = "https://shop.example.com"\n'
        'license_api_url = "https://api.vendor.com/licenses"\n'
        'versions_api_url = "https://api.vendor.com/versions"\n'
    )

    config = load_config(path, overrides={"site_url": "https://staging.example.com", "prefix": None})

    assert config.site_url == "https://staging.example.com"
    assert config.prefix == "api_vendor_com"


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.toml")


def test_load_config_invalid_toml(tmp_path: Path):
    path = tmp_path / "bad.toml"
    path.write_text("site_url = ")

    with pytest.raises(ValueError, match="Invalid TOML"):
        load_config(path)


def test_sanitize_key():
    assert sanitize_key("_My.Prefix_update-check!") == "_myprefix_update-check"
