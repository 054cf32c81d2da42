from __future__ import annotations

import json

import pytest

from watermark_api import backend_pre_start
from watermark_api.core.config import Settings, parse_cors, settings
from watermark_api.enums import ProductEffectType
from watermark_api.integrations.image_edit import BBox, decoded_size_bytes, strip_data_url
from watermark_api.services import catalog_service
from watermark_api.services.catalog_service import ProductEffect, parse_catalog


def test_default_catalog_has_legacy_and_credit_products():
    catalog = catalog_service.refresh_catalog()
    assert catalog["pro_unlock"] == ProductEffect.grant_pro()
    assert catalog["credits_10"].credits == 10
    assert catalog["credits_50"].credits == 50
    assert catalog["credits_100"].type == ProductEffectType.add_credits


def test_catalog_path_override(monkeypatch, tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"products": {"credits_5": {"effect": "add_credits", "credits": 5}}}))
    monkeypatch.setattr(settings, "PRODUCT_CATALOG_PATH", str(path))

    catalog = catalog_service.refresh_catalog()
    assert list(catalog) == ["credits_5"]

    monkeypatch.setattr(settings, "PRODUCT_CATALOG_PATH", str(tmp_path / "missing.json"))
    assert catalog_service.refresh_catalog() == {}

    monkeypatch.setattr(settings, "PRODUCT_CATALOG_PATH", None)
    catalog_service.refresh_catalog()


def test_parse_catalog_rejects_bad_entries():
    with pytest.raises(ValueError):
        parse_catalog({"products": {"x": {"effect": "free_money"}}})
    with pytest.raises(ValueError):
        parse_catalog({"products": {"x": {"effect": "add_credits", "credits": 0}}})
    with pytest.raises(ValueError):
        parse_catalog({"products": ["x"]})


def test_dev_mode_defaults_off_and_is_refused_in_production():
    local = Settings(_env_file=None)
    assert local.DEV_MODE is False
    assert local.FREE_USAGE_LIMIT >= 0

    with pytest.raises(ValueError):
        Settings(_env_file=None, ENVIRONMENT="production", DEV_MODE=True)


def test_settings_database_uri_and_secrets():
    s = Settings(_env_file=None, DATABASE_URL="sqlite:///./watermark.db")
    assert s.SQLALCHEMY_DATABASE_URI == "sqlite:///./watermark.db"

    s = Settings(
        _env_file=None,
        DATABASE_URL=None,
        POSTGRES_SERVER="db",
        POSTGRES_USER="u",
        POSTGRES_PASSWORD="p",
        POSTGRES_DB="wm",
    )
    assert s.SQLALCHEMY_DATABASE_URI.startswith("postgresql+psycopg://u:p@db:5432/wm")

    with pytest.raises(ValueError):
        Settings(_env_file=None, ENVIRONMENT="staging", APPLE_SHARED_SECRET="changethis")


def test_parse_cors():
    assert parse_cors("http://a.com, http://b.com") == ["http://a.com", "http://b.com"]
    assert parse_cors(["a"]) == ["a"]
    with pytest.raises(ValueError):
        parse_cors(123)


def test_bbox_helpers():
    assert BBox(0.1, 0.1, 0.5, 0.5).is_valid()
    assert not BBox(0.5, 0.1, 0.5, 0.5).is_valid()
    assert not BBox(-0.1, 0.1, 0.5, 0.5).is_valid()

    grown = BBox(0.0, 0.4, 0.2, 0.6).expanded(0.1)
    assert grown.x0 == 0.0
    assert grown.y0 == pytest.approx(0.39)
    assert grown.x1 == pytest.approx(0.21)

    assert strip_data_url("data:image/png;base64,QUJD") == "QUJD"
    assert decoded_size_bytes("data:image/png;base64,QUJD") == 3


def test_prestart_checks_database(engine, monkeypatch):
    monkeypatch.setattr(backend_pre_start, "engine", engine)
    backend_pre_start.init(engine)
    backend_pre_start.main()
