from __future__ import annotations

import base64

from watermark_api.api.errors import VerificationTransportFailure
from watermark_api.core.config import settings

IMAGE = "data:image/jpeg;base64," + base64.b64encode(b"fake image bytes").decode()
BBOX = {"x0": 0.1, "y0": 0.1, "x1": 0.5, "y1": 0.3}


def _edit(client, install_id: str, **overrides):  # type: ignore[no-untyped-def]
    body = {"installId": install_id, "imageBase64": IMAGE, "bbox": BBOX, "retryLevel": 0}
    body.update(overrides)
    return client.post("/v1/edit", json=body)


def _verify(client, install_id: str, receipt: str, product_id: str = "credits_50", platform: str = "ios"):  # type: ignore[no-untyped-def]
    return client.post(
        "/v1/iap/verify",
        json={"installId": install_id, "platform": platform, "productId": product_id, "receipt": receipt},
    )


def test_get_entitlements_creates_and_returns_zero_state(client):
    r = client.get("/v1/entitlements", params={"installId": "device_1"})
    assert r.status_code == 200
    assert r.json() == {"installId": "device_1", "isPro": False, "freeRemaining": 1, "credits": 0}

    r = client.get("/v1/entitlements", params={"installId": "device_1"})
    assert r.json()["freeRemaining"] == 1


def test_get_entitlements_requires_install_id(client):
    r = client.get("/v1/entitlements")
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "INVALID_REQUEST"
    assert body["data"]["errors"]

    r = client.get("/v1/entitlements", params={"installId": ""})
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_REQUEST"


def test_free_quota_then_paywall(client, editor):
    r = _edit(client, "X")
    assert r.status_code == 200
    assert r.json() == {"resultBase64": editor.result, "meta": {"retryLevel": 0}}

    r = client.get("/v1/entitlements", params={"installId": "X"})
    assert r.json()["freeRemaining"] == 0

    r = _edit(client, "X")
    assert r.status_code == 402
    assert r.json()["code"] == "PAYWALL"
    assert len(editor.calls) == 1


def test_failed_edit_consumes_nothing(client, editor):
    editor.result = None
    r = _edit(client, "failing")
    assert r.status_code == 500
    assert r.json()["code"] == "PROCESSING_FAILED"

    r = client.get("/v1/entitlements", params={"installId": "failing"})
    assert r.json()["freeRemaining"] == 1


def test_edit_validates_bbox_and_size(client, editor, monkeypatch):
    r = _edit(client, "geo", bbox={"x0": 0.5, "y0": 0.1, "x1": 0.4, "y1": 0.3})
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_BBOX"

    r = _edit(client, "geo", bbox={"x0": 0.1, "y0": 0.1, "x1": 1.2, "y1": 0.3})
    assert r.json()["code"] == "INVALID_BBOX"

    r = _edit(client, "geo", retryLevel=7)
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_REQUEST"

    monkeypatch.setattr(settings, "MAX_IMAGE_SIZE_MB", 0)
    r = _edit(client, "geo")
    assert r.status_code == 413
    assert r.json()["code"] == "IMAGE_TOO_LARGE"
    assert editor.calls == []


def test_edit_passes_region_and_retry_level(client, editor):
    r = _edit(client, "retry", retryLevel=2)
    assert r.status_code == 200
    bbox, level = editor.calls[0]
    assert (bbox.x0, bbox.y0, bbox.x1, bbox.y1) == (0.1, 0.1, 0.5, 0.3)
    assert level == 2
    assert r.json()["meta"]["retryLevel"] == 2


def test_dev_mode_bypasses_paywall(client, monkeypatch):
    monkeypatch.setattr(settings, "DEV_MODE", True)
    for _ in range(3):
        assert _edit(client, "dev_device").status_code == 200

    monkeypatch.setattr(settings, "DEV_MODE", False)
    r = client.get("/v1/entitlements", params={"installId": "dev_device"})
    assert r.json()["freeRemaining"] == 1


def test_credit_purchase_then_replay(client, verifier):
    verifier.add("receipt-T1", transaction_id="T1", product_id="credits_50")

    r = _verify(client, "buyer", "receipt-T1")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["credits"] == 50
    assert body["creditsAdded"] == 50
    assert body["replayed"] is False
    assert body["transactionId"] == "T1"

    r = _verify(client, "buyer", "receipt-T1")
    assert r.status_code == 200
    body = r.json()
    assert body["credits"] == 50
    assert body["creditsAdded"] == 0
    assert body["replayed"] is True

    r = client.get("/v1/iap/transactions", params={"installId": "buyer"})
    assert r.status_code == 200
    assert r.json()["count"] == 1
    assert r.json()["data"][0]["transactionId"] == "T1"


def test_purchased_credits_unlock_edits(client, verifier):
    verifier.add("receipt-10", transaction_id="T10", product_id="credits_10")

    assert _edit(client, "spender").status_code == 200
    assert _edit(client, "spender").status_code == 402

    assert _verify(client, "spender", "receipt-10", product_id="credits_10").status_code == 200
    assert _edit(client, "spender").status_code == 200

    r = client.get("/v1/entitlements", params={"installId": "spender"})
    assert r.json()["credits"] == 9


def test_pro_unlock_purchase(client, verifier):
    verifier.add("receipt-pro", transaction_id="P1", product_id="pro_unlock")

    r = _verify(client, "legacy", "receipt-pro", product_id="pro_unlock")
    assert r.status_code == 200
    assert r.json()["isPro"] is True
    assert r.json()["freeRemaining"] == 999

    for _ in range(3):
        assert _edit(client, "legacy").status_code == 200


def test_verify_error_vocabulary(client, verifier):
    r = client.post("/v1/iap/verify", json={"installId": "a", "platform": "ios", "productId": "credits_10"})
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_REQUEST"

    r = _verify(client, "a", "r", platform="android")
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_PLATFORM"

    r = _verify(client, "a", "r", product_id="credits_7")
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_PRODUCT"

    r = _verify(client, "a", "unknown-receipt")
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_RECEIPT"

    verifier.results["flaky"] = VerificationTransportFailure("Apple verification unavailable: timeout")
    r = _verify(client, "a", "flaky")
    assert r.status_code == 500
    assert r.json()["code"] == "VERIFICATION_FAILED"


def test_health_endpoints(client):
    r = client.get("/v1/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True

    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy", "version": settings.VERSION}
