import json
import re
from typing import Any
from loguru import logger
from .errors import MalformedModelOutput

_LEADING_FENCE_RE = re.compile(r"^```(?:json)?[ \t]*\r?\n?", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\r?\n?```$")


def strip_json_fences(text: str) -> str:
    """
    Remove a Markdown code fence wrapped around a JSON document.

    Handles ```json ... ``` and bare ``` ... ```. Text without fences is
    only trimmed, so applying this twice gives the same result.
    """
    cleaned = text.strip()
    cleaned = _LEADING_FENCE_RE.sub("", cleaned, count=1)
    cleaned = _TRAILING_FENCE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_model_json(raw_text: str) -> dict[str, Any]:
    """
    Parse the vision model's answer into a JSON object.

    Raises:
        MalformedModelOutput: with the untouched model text attached, when
            the answer is not JSON or is JSON but not an object.
    """
    cleaned = strip_json_fences(raw_text)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(
            "Model output is not valid JSON",
            error=str(e),
            raw_chars=len(raw_text),
        )
        raise MalformedModelOutput(details=str(e), raw_text=raw_text)

    if not isinstance(parsed, dict):
        logger.warning("Model output is not a JSON object", json_type=type(parsed).__name__)
        raise MalformedModelOutput(
            details=f"Expected a JSON object, got {type(parsed).__name__}",
            raw_text=raw_text,
        )

    return parsed
