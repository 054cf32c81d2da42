from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any

from watermark_api.core.config import settings
from watermark_api.enums import ProductEffectType

logger = logging.getLogger(__name__)

_lock = Lock()
_catalog: dict[str, ProductEffect] | None = None


@dataclass(frozen=True)
class ProductEffect:
    """A catalog entry: what applying one purchase of the product does."""

    type: ProductEffectType
    credits: int = 0

    @classmethod
    def grant_pro(cls) -> ProductEffect:
        return cls(type=ProductEffectType.grant_pro)

    @classmethod
    def add_credits(cls, n: int) -> ProductEffect:
        if n <= 0:
            raise ValueError(f"credits must be positive, got {n}")
        return cls(type=ProductEffectType.add_credits, credits=n)


def get_catalog() -> dict[str, ProductEffect]:
    """
    Product id -> effect. Loaded once from PRODUCT_CATALOG_PATH or the bundled file.
    """
    global _catalog
    with _lock:
        if _catalog is not None:
            return _catalog
        _catalog = _load_from_file(_catalog_path())
        return _catalog


def refresh_catalog() -> dict[str, ProductEffect]:
    global _catalog
    with _lock:
        _catalog = _load_from_file(_catalog_path())
        return _catalog


def _catalog_path() -> Path:
    if settings.PRODUCT_CATALOG_PATH:
        return Path(settings.PRODUCT_CATALOG_PATH)
    return Path(__file__).resolve().parents[1] / "config" / "product_catalog.json"


def _load_from_file(path: Path) -> dict[str, ProductEffect]:
    if not path.exists():
        logger.warning(f"Product catalog {path} not found, no products are purchasable")
        return {}
    return parse_catalog(json.loads(path.read_text(encoding="utf-8")))


def parse_catalog(raw: dict[str, Any]) -> dict[str, ProductEffect]:
    products = raw.get("products", {}) if isinstance(raw, dict) else {}
    if not isinstance(products, dict):
        raise ValueError("catalog 'products' must be an object")

    catalog: dict[str, ProductEffect] = {}
    for product_id, entry in products.items():
        effect = entry.get("effect") if isinstance(entry, dict) else None
        if effect == ProductEffectType.grant_pro.value:
            catalog[product_id] = ProductEffect.grant_pro()
        elif effect == ProductEffectType.add_credits.value:
            catalog[product_id] = ProductEffect.add_credits(int(entry.get("credits", 0)))
        else:
            raise ValueError(f"Unknown effect {effect!r} for product {product_id}")
    return catalog
