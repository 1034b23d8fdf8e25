from loguru import logger
from .errors import UpstreamEmptyResponse
from .json_extraction import parse_model_json
from .receipt_normalizer import ReceiptNormalizer, create_receipt_normalizer
from .receipt_types import ReceiptAnalysis
from .vision_client import VisionClient, create_vision_client


class ReceiptAnalyzer:
    """
    Runs one receipt image through the vision model and the normalizer.

    The model call is the only awaited step; everything after it is pure.
    Failures raise ReceiptAnalysisError subclasses, never retried here.
    """

    def __init__(self, normalizer: ReceiptNormalizer, vision_client: VisionClient):
        self.normalizer = normalizer
        self.vision_client = vision_client

    async def analyze(self, data_url: str) -> ReceiptAnalysis:
        raw_text = await self.vision_client.complete(data_url)
        if not raw_text or not raw_text.strip():
            logger.error("Vision service returned no content")
            raise UpstreamEmptyResponse(details="The model returned no content")

        return self.analyze_text(raw_text)

    def analyze_text(self, raw_text: str) -> ReceiptAnalysis:
        """Normalize an already-received model answer."""
        parsed = parse_model_json(raw_text)
        normalized, split = self.normalizer.normalize(parsed)

        logger.info(
            "Receipt analyzed",
            vendor=normalized.vendor_name,
            total=normalized.total_amount,
            items=len(split.items),
        )
        return ReceiptAnalysis(normalized=normalized, split=split, raw_text=raw_text)


def create_receipt_analyzer() -> ReceiptAnalyzer:
    return ReceiptAnalyzer(
        normalizer=create_receipt_normalizer(),
        vision_client=create_vision_client(),
    )
