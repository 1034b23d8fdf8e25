from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.datastructures import UploadFile
from ..deps import AnalysisFailureResponse, AnalyzeReceiptResponse, get_receipt_analyzer
from ...core.config import settings
from ...services.errors import InputError, MalformedModelOutput, ReceiptAnalysisError
from ...services.image_input import resolve_image_data_url
from ...services.receipt_analyzer import ReceiptAnalyzer

router = APIRouter(prefix="/api/ai", tags=["ai"])


async def _read_image_source(request: Request) -> tuple[str | None, bytes | None, str | None]:
    """
    Pull the image out of the request.

    Returns (image_base64, file_bytes, file_media_type); any may be None.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        image_base64 = form.get("imageBase64")
        if not isinstance(image_base64, str):
            image_base64 = None

        # Any field name is accepted; the first file part wins
        upload = next(
            (value for _, value in form.multi_items() if isinstance(value, UploadFile)),
            None,
        )
        if upload is None:
            return image_base64, None, None
        return image_base64, await upload.read(), upload.content_type

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("imageBase64"), str):
            return body["imageBase64"], None, None

    return None, None, None


@router.post(
    "/receipts/analyze-image",
    response_model=AnalyzeReceiptResponse,
    responses={
        400: {"model": AnalysisFailureResponse},
        413: {"model": AnalysisFailureResponse},
        500: {"model": AnalysisFailureResponse},
    },
)
async def analyze_receipt_image(
    request: Request,
    analyzer: ReceiptAnalyzer = Depends(get_receipt_analyzer),
):
    """
    Extract structured receipt data from a photo.

    Accepts either:
    - application/json: {"imageBase64": "<base64 or data URL>"}
    - multipart/form-data: an image file under any field name

    Returns the flat receipt fields (`data`) ready to save, an itemized
    `split_receipt` for bill splitting, and the model's `raw_text`.
    Failures return {"success": false, "error": ..., "details": ...}; when
    the model answered with something that is not JSON, `raw_text` is
    included as well.
    """
    logger.info(
        "Receipt image analysis requested",
        content_type=request.headers.get("content-type", ""),
    )

    try:
        image_base64, file_bytes, media_type = await _read_image_source(request)
        data_url = resolve_image_data_url(
            image_base64=image_base64,
            file_bytes=file_bytes,
            file_media_type=media_type,
            max_upload_bytes=settings.max_upload_bytes,
            default_media_type=settings.default_image_media_type,
        )
        analysis = await analyzer.analyze(data_url)
    except InputError as e:
        logger.warning("Rejected receipt image request", error=e.error)
        return JSONResponse(status_code=e.status_code, content=e.to_payload())
    except MalformedModelOutput as e:
        logger.warning("Could not parse receipt JSON from model", details=e.details)
        return JSONResponse(status_code=e.status_code, content=e.to_payload())
    except ReceiptAnalysisError as e:
        logger.error("Receipt analysis failed", error=e.error, details=e.details)
        return JSONResponse(status_code=e.status_code, content=e.to_payload())
    except Exception as e:
        logger.error(f"Unexpected receipt analysis error: {type(e).__name__}")
        failure = ReceiptAnalysisError(details=str(e))
        return JSONResponse(status_code=500, content=failure.to_payload())

    return AnalyzeReceiptResponse(
        data=analysis.normalized,
        split_receipt=analysis.split,
        raw_text=analysis.raw_text,
    )
