"""
Tests for POST /api/ai/receipts/analyze-image.

The vision provider is mocked with respx so each test controls exactly
what the model "answered".
"""

import io
import json
import httpx
import pytest
import respx
from fastapi.testclient import TestClient
from smart_expense.api.deps import get_receipt_analyzer
from smart_expense.api.main import app
from smart_expense.core.config import settings
from smart_expense.services.receipt_analyzer import ReceiptAnalyzer
from smart_expense.services.receipt_normalizer import ReceiptNormalizer
from smart_expense.services.vision_client import VisionClient, VisionClientConfig

client = TestClient(app)

COMPLETIONS_URL = "https://vision.test/v1/chat/completions"
ENDPOINT = "/api/ai/receipts/analyze-image"

CAFE_JSON = json.dumps({
    "merchant_name": "Cafe",
    "purchase_date": "2025-09-30",
    "total": "$9.50",
    "currency": "USD",
    "payment_method": "Apple Pay",
    "category": "Coffee",
    "line_items": [
        {"description": "Latte", "quantity": 1, "unit_price": 4.75, "total": 4.75},
        {"description": "Muffin", "quantity": 1, "unit_price": 4.75, "total": 4.75},
    ],
})


@pytest.fixture
def analyzer():
    """Analyzer pointed at a mocked provider, served to the API for the test"""
    receipt_analyzer = ReceiptAnalyzer(
        normalizer=ReceiptNormalizer(),
        vision_client=VisionClient(VisionClientConfig(
            base_url="https://vision.test/v1",
            api_key="test-key",
        )),
    )
    app.dependency_overrides[get_receipt_analyzer] = lambda: receipt_analyzer
    yield receipt_analyzer
    app.dependency_overrides.pop(get_receipt_analyzer, None)


def _model_answers(content):
    return respx.post(COMPLETIONS_URL).mock(
        return_value=httpx.Response(200, json={"choices": [{"message": {"content": content}}]})
    )


def test_json_base64_success(analyzer):
    with respx.mock:
        route = _model_answers(f"```json\n{CAFE_JSON}\n```")

        r = client.post(ENDPOINT, json={"imageBase64": "QUJD"})

        assert r.status_code == 200
        sent = json.loads(route.calls.last.request.content)
        image_part = sent["messages"][1]["content"][1]
        assert image_part["image_url"]["url"] == "data:image/jpeg;base64,QUJD"

    body = r.json()
    assert body["success"] is True
    assert body["data"]["vendor_name"] == "Cafe"
    assert body["data"]["total_amount"] == 9.5
    assert body["data"]["payment_method"] == "mobile_payment"
    assert body["data"]["suggested_category"] == "Coffee"
    assert body["data"]["confidence"] == settings.default_confidence
    assert [item["total"] for item in body["data"]["items"]] == [4.75, 4.75]

    split = body["split_receipt"]
    assert split["merchant"] == "Cafe"
    assert split["subtotal"] == 9.5
    assert [item["name"] for item in split["items"]] == ["Latte", "Muffin"]
    assert all(item["assigned_to"] == [] for item in split["items"])
    assert all(item["id"] for item in split["items"])
    assert body["raw_text"].startswith("```json")


def test_multipart_upload_success(analyzer):
    with respx.mock:
        route = _model_answers(CAFE_JSON)

        files = {"receipt": ("receipt.png", io.BytesIO(b"ABC"), "image/png")}
        r = client.post(ENDPOINT, files=files)

        assert r.status_code == 200
        sent = json.loads(route.calls.last.request.content)
        assert sent["messages"][1]["content"][1]["image_url"]["url"] == "data:image/png;base64,QUJD"

    assert r.json()["data"]["vendor_name"] == "Cafe"


def test_form_field_base64(analyzer):
    with respx.mock:
        _model_answers(CAFE_JSON)
        r = client.post(ENDPOINT, data={"imageBase64": "data:image/webp;base64,QUJD"})

    assert r.status_code == 200


def test_missing_image_returns_400_without_calling_model(analyzer):
    with respx.mock(assert_all_called=False):
        route = _model_answers(CAFE_JSON)

        r = client.post(ENDPOINT, json={})

        assert not route.called

    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Image file is required"}


def test_empty_body_returns_400(analyzer):
    r = client.post(ENDPOINT)
    assert r.status_code == 400
    assert r.json()["error"] == "Image file is required"


def test_oversized_upload_returns_413(analyzer):
    original_limit = settings.max_upload_bytes
    settings.max_upload_bytes = 4

    try:
        with respx.mock(assert_all_called=False):
            route = _model_answers(CAFE_JSON)
            files = {"file": ("receipt.jpg", io.BytesIO(b"too many bytes"), "image/jpeg")}

            r = client.post(ENDPOINT, files=files)

            assert not route.called
    finally:
        settings.max_upload_bytes = original_limit

    assert r.status_code == 413
    assert r.json()["success"] is False
    assert r.json()["error"] == "Image file is too large"


def test_unparseable_answer_returns_500_with_raw_text(analyzer):
    with respx.mock:
        _model_answers("I could not read that receipt, sorry!")
        r = client.post(ENDPOINT, json={"imageBase64": "QUJD"})

    assert r.status_code == 500
    body = r.json()
    assert body["success"] is False
    assert body["error"] == "Failed to parse JSON from model"
    assert body["raw_text"] == "I could not read that receipt, sorry!"
    assert body["details"]


def test_absurd_number_in_answer_is_dropped_not_fatal(analyzer):
    huge = "9" * 400
    answer = (
        '{"merchant_name": "X", "total": ' + huge + ','
        ' "line_items": [{"description": "a", "unit_price": 2}]}'
    )

    with respx.mock:
        _model_answers(answer)
        r = client.post(ENDPOINT, json={"imageBase64": "QUJD"})

    assert r.status_code == 200
    body = r.json()
    assert body["data"]["vendor_name"] == "X"
    assert body["data"]["total_amount"] is None
    assert body["data"]["items"][0]["total"] == 2
    assert body["split_receipt"]["subtotal"] == 2


def test_empty_answer_returns_500(analyzer):
    with respx.mock:
        _model_answers("   ")
        r = client.post(ENDPOINT, json={"imageBase64": "QUJD"})

    assert r.status_code == 500
    assert r.json()["error"] == "Empty response from vision model"


def test_provider_failure_returns_500(analyzer):
    with respx.mock:
        respx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(503, text="upstream down"))
        r = client.post(ENDPOINT, json={"imageBase64": "QUJD"})

    assert r.status_code == 500
    body = r.json()
    assert body == {
        "success": False,
        "error": "Failed to analyze receipt image",
        "details": "Vision service returned HTTP 503",
    }


def test_unconfigured_provider_uses_mock_receipt():
    """Without an API key the endpoint answers with the demo receipt"""
    demo_analyzer = ReceiptAnalyzer(ReceiptNormalizer(), VisionClient(VisionClientConfig(api_key=None)))
    app.dependency_overrides[get_receipt_analyzer] = lambda: demo_analyzer

    try:
        r = client.post(ENDPOINT, json={"imageBase64": "QUJD"})
    finally:
        app.dependency_overrides.pop(get_receipt_analyzer, None)

    assert r.status_code == 200
    body = r.json()
    assert body["data"]["vendor_name"] == "Corner Cafe"
    assert body["data"]["payment_method"] == "credit_card"
    assert body["split_receipt"]["subtotal"] == 9.5
    assert body["split_receipt"]["total_amount"] == 10.45
