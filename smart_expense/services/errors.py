"""
Failure taxonomy for receipt image analysis.

Every failure carries a short `error` summary, an optional `details`
message and, when the model did answer, the `raw_text` it returned so a
human (or a retry) can inspect it. The API layer renders these as the
`{"success": false, ...}` envelope; provider error objects and stack
traces never leave this process.
"""

from typing import Optional


class ReceiptAnalysisError(Exception):
    status_code: int = 500
    error: str = "Failed to analyze receipt image"

    def __init__(
        self,
        details: Optional[str] = None,
        raw_text: Optional[str] = None,
        error: Optional[str] = None,
    ):
        super().__init__(details or error or self.error)
        if error:
            self.error = error
        self.details = details
        self.raw_text = raw_text

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        if self.raw_text is not None:
            payload["raw_text"] = self.raw_text
        return payload


class InputError(ReceiptAnalysisError):
    """Client supplied no usable image; the vision service is not called."""
    status_code = 400


class ImageRequiredError(InputError):
    error = "Image file is required"


class ImageTooLargeError(InputError):
    status_code = 413
    error = "Image file is too large"


class VisionServiceError(ReceiptAnalysisError):
    """Transport failure, timeout or non-2xx answer from the provider."""


class UpstreamEmptyResponse(ReceiptAnalysisError):
    error = "Empty response from vision model"


class MalformedModelOutput(ReceiptAnalysisError):
    error = "Failed to parse JSON from model"
