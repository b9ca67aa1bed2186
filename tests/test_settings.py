from __future__ import annotations

from pathlib import Path

import pytest

from candleshop.config import load_config
from candleshop.data import settings_repository
from candleshop.services.config_resolver import ConfigResolver, settings_resolver


def test_unset_setting_is_none_and_default_is_separate(db):
    assert settings_repository.get_setting("freeShippingThreshold") is None
    assert settings_repository.get_default("freeShippingThreshold") == "50"


def test_set_setting_upserts(db):
    settings_repository.set_setting("storeName", "Candles")
    entry = settings_repository.set_setting("storeName", "More Candles")

    assert entry.value == "More Candles"
    assert settings_repository.get_setting("storeName") == "More Candles"
    assert [item.key for item in settings_repository.list_settings()] == ["storeName"]


def test_empty_key_is_rejected(db):
    with pytest.raises(ValueError):
        settings_repository.set_setting("  ", "x")


def test_delete_setting(db):
    settings_repository.set_setting("storePhone", "123")

    assert settings_repository.delete_setting("storePhone") is True
    assert settings_repository.delete_setting("storePhone") is False


def test_shop_settings_fall_back_on_blank_values(db):
    settings_repository.set_setting("storeName", "  ")
    settings_repository.set_setting("storeCity", "Split")

    shop = settings_repository.get_shop_settings()

    assert shop.store_name == "Kerzenwelt by Dani"
    assert shop.store_city == "Split"


def test_resolver_takes_first_defined_value():
    resolver = ConfigResolver([{"a": None, "b": " "}, {"a": "1", "b": "2"}, lambda key: "fallback"])

    assert resolver.resolve("a") == "1"
    assert resolver.resolve("b") == "2"
    assert resolver.resolve("c") == "fallback"


def test_resolver_skips_non_numeric_values():
    resolver = ConfigResolver([{"rate": "cheap"}, {"rate": "4.5"}])

    assert resolver.resolve_float("rate", 1.0) == 4.5
    assert ConfigResolver([]).resolve_float("rate", 1.0) == 1.0


def test_settings_resolver_order(db):
    settings_repository.set_setting("standardShippingRate", "7")

    assert settings_resolver().resolve("standardShippingRate") == "7"
    assert settings_resolver({"standardShippingRate": 3}).resolve("standardShippingRate") == "3"
    assert settings_resolver().resolve("freeShippingThreshold") == "50"


def test_load_config_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("CANDLESHOP_DATA_DIR", str(tmp_path))
    for key in ("CANDLESHOP_ENV", "CANDLESHOP_ALLOW_MOCK_PAYMENTS", "CANDLESHOP_PORT", "PAYPAL_CLIENT_ID"):
        monkeypatch.delenv(key, raising=False)

    config = load_config()

    assert config.data_dir == Path(tmp_path)
    assert config.environment == "development"
    assert config.allow_mock_payments is True
    assert config.has_paypal_credentials is False
    assert config.port == 5000


def test_production_never_allows_mocks(monkeypatch):
    monkeypatch.delenv("PAYPAL_API_BASE", raising=False)
    monkeypatch.setenv("CANDLESHOP_ENV", "production")
    monkeypatch.setenv("CANDLESHOP_ALLOW_MOCK_PAYMENTS", "1")

    config = load_config()

    assert config.is_production
    assert config.allow_mock_payments is False
    assert config.paypal_api_base == "https://api-m.paypal.com"
