import json
import time
import httpx
from loguru import logger
from pydantic import BaseModel
from .errors import VisionServiceError

RECEIPT_SYSTEM_PROMPT = """
You are an expert receipt parser. You receive a photo of a receipt and MUST return ONLY valid JSON with this exact shape:

{
  "merchant_name": string | null,
  "merchant_address": string | null,
  "purchase_date": string | null,
  "subtotal": number | null,
  "tax": number | null,
  "total": number | null,
  "currency": string | null,
  "line_items": [
    {
      "description": string,
      "quantity": number | null,
      "unit_price": number | null,
      "total": number | null
    }
  ],
  "notes": string | null,
  "category": string | null,
  "payment_method": string | null
}

Rules:
- "category" is ONE short word or phrase such as "Groceries", "Restaurants",
  "Transport", "Shopping", "Bills", "Health", "Entertainment", "Fuel",
  "Coffee" or "Other".
- "payment_method" is something like "Cash", "Credit Card", "Debit Card",
  "Mobile Payment", "Bank Transfer" or "Other".
- If you are not sure about a field, set it to null.
- "purchase_date" uses ISO format (YYYY-MM-DD) when possible, otherwise null.
- "currency" is a 3-letter code like "USD" or "EUR", or null if unclear.
- NEVER include any text outside the JSON. No explanations. No markdown.
""".strip()

RECEIPT_USER_PROMPT = "Extract the receipt data from this image and return JSON only."

# Returned when no API key is configured so the endpoint works in local demos
MOCK_RECEIPT_RESPONSE = json.dumps({
    "merchant_name": "Corner Cafe",
    "merchant_address": "12 Main St",
    "purchase_date": "2025-09-30",
    "subtotal": 9.5,
    "tax": 0.95,
    "total": 10.45,
    "currency": "USD",
    "line_items": [
        {"description": "Latte", "quantity": 1, "unit_price": 4.75, "total": 4.75},
        {"description": "Muffin", "quantity": 1, "unit_price": 4.75, "total": 4.75},
    ],
    "notes": None,
    "category": "Coffee",
    "payment_method": "Credit Card",
})


class VisionClientConfig(BaseModel):
    base_url: str = "https://api.groq.com/openai/v1"
    api_key: str | None = None
    model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    temperature: float = 0.1
    max_tokens: int = 800
    timeout_seconds: float = 30.0


class VisionClient:
    """
    Minimal client for an OpenAI-compatible chat completions endpoint.

    One request per call, no retries; failures are raised as
    VisionServiceError for the caller to report.
    """

    def __init__(self, config: VisionClientConfig = None, transport: httpx.AsyncBaseTransport = None):
        self.config = config or VisionClientConfig()
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def build_payload(self, data_url: str) -> dict:
        return {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": "system", "content": RECEIPT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": RECEIPT_USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                },
            ],
        }

    async def complete(self, data_url: str) -> str:
        """
        Send the receipt image to the model and return its raw text answer.

        Returns an empty string when the provider answered without content.
        """
        if not self.configured:
            logger.warning(
                "Vision service not configured - using MOCK receipt. "
                "Set LLM_API_KEY to use real extraction."
            )
            return MOCK_RECEIPT_RESPONSE

        url = self.config.base_url.rstrip("/") + "/chat/completions"
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        payload = self.build_payload(data_url)

        logger.info(
            "Calling vision service",
            model=self.config.model,
            image_chars=len(data_url),
        )
        started = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                r = await client.post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.error("Vision service timed out", error=str(e))
            raise VisionServiceError(details="Vision service request timed out")
        except httpx.HTTPError as e:
            logger.error("Vision service request failed", error=str(e))
            raise VisionServiceError(details=f"Vision service request failed: {type(e).__name__}")

        elapsed_ms = round((time.perf_counter() - started) * 1000)

        if r.status_code >= 400:
            logger.error(
                "Vision service returned an error status",
                http_status=r.status_code,
                elapsed_ms=elapsed_ms,
            )
            raise VisionServiceError(details=f"Vision service returned HTTP {r.status_code}")

        try:
            body = r.json()
            content = body["choices"][0]["message"].get("content")
        except (ValueError, KeyError, IndexError, TypeError, AttributeError):
            logger.error("Vision service returned an unexpected body", elapsed_ms=elapsed_ms)
            raise VisionServiceError(details="Vision service returned an unexpected response body")

        if not isinstance(content, str):
            content = ""

        logger.info(
            "Vision service answered",
            http_status=r.status_code,
            elapsed_ms=elapsed_ms,
            content_chars=len(content or ""),
        )
        return content or ""


def create_vision_client(**overrides) -> VisionClient:
    """
    Factory function to create a vision client from settings.

    Keyword arguments override individual VisionClientConfig fields.
    """
    from ..core.config import settings

    values = {
        "base_url": settings.llm_base_url,
        "api_key": settings.llm_api_key,
        "model": settings.llm_model,
        "temperature": settings.llm_temperature,
        "max_tokens": settings.llm_max_tokens,
        "timeout_seconds": settings.llm_timeout_seconds,
    }
    values.update(overrides)
    return VisionClient(VisionClientConfig(**values))
