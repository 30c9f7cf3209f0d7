"""Thin JSON endpoints over the photo, text and report helpers."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from unitydesk.api.deps import get_services
from unitydesk.api.rate_limit import limiter, validate_image_limit
from unitydesk.api.schemas import error_response
from unitydesk.complaints.report import (
    ReportRequest,
    build_report_pdf,
    report_data_uri,
    report_file_name,
)
from unitydesk.complaints.service import AppServices
from unitydesk.errors import InputError
from unitydesk.intake.normalize import decode_image
from unitydesk.pipeline.text_analysis import analyze_text_complaint, check_text_length
from unitydesk.pipeline.vision import analyze_images, merge_analyses, validate_civic_image
from unitydesk.utils.logging import get_logger
from unitydesk.utils.text import strip_data_uri


logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])


def _server_error(message: str, exc: Exception) -> JSONResponse:
    return error_response(500, message, str(exc) or "Unknown error")


@router.post("/analyze-complaint")
async def analyze_complaint(
    payload: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
):
    images = payload.get("images")
    if not isinstance(images, list) or not images:
        raise InputError("No images provided")
    if not all(isinstance(image, str) and image.strip() for image in images):
        raise InputError("Images must be base64 strings")
    limit = services.settings.max_images_per_request
    if len(images) > limit:
        raise InputError(f"Maximum {limit} images allowed")

    try:
        analyses = await analyze_images(
            services.llm,
            [strip_data_uri(image) for image in images],
            services.settings.prompt_version,
        )
        merged = merge_analyses(analyses)
    except Exception as exc:
        logger.exception("api.analyze_complaint.failed")
        return _server_error("Failed to analyze images", exc)

    return {
        "success": True,
        "analysis": merged.model_dump(),
        "individualAnalyses": [analysis.model_dump() for analysis in analyses],
        "imageCount": len(images),
    }


@router.post("/validate-image")
@limiter.limit(validate_image_limit)
async def validate_image(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
):
    image = payload.get("image")
    if not isinstance(image, str) or not image.strip():
        raise InputError("No image provided")
    data = decode_image(image)
    if len(data) > services.settings.max_upload_bytes:
        raise InputError(f"File too large (max {services.settings.max_upload_mb} MB)")

    verdict = await validate_civic_image(
        services.llm, strip_data_uri(image), services.settings.prompt_version
    )
    return {"success": True, "isValid": verdict.is_valid, "message": verdict.message}


@router.post("/generate-report")
async def generate_report(
    payload: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
):
    try:
        report = ReportRequest.model_validate(payload)
    except ValidationError as exc:
        raise InputError("Invalid report fields") from exc
    if report.missing_fields():
        raise InputError("Missing required fields: " + ", ".join(report.missing_fields()))

    try:
        pdf = build_report_pdf(report, services.settings.app_url)
    except Exception as exc:
        logger.exception("api.generate_report.failed reference_id=%s", report.reference_id)
        return _server_error("Failed to generate report", exc)

    return {
        "success": True,
        "pdf": report_data_uri(pdf),
        "fileName": report_file_name(report.reference_id),
    }


@router.post("/analyze-text")
async def analyze_text(
    payload: Dict[str, Any] = Body(...),
    services: AppServices = Depends(get_services),
):
    text = payload.get("text")
    if not isinstance(text, str):
        raise InputError("No text provided")
    settings = services.settings
    check_text_length(text, settings.min_text_chars)

    try:
        analysis = await analyze_text_complaint(
            services.llm, text, settings.min_text_chars, settings.prompt_version
        )
    except Exception as exc:
        logger.exception("api.analyze_text.failed")
        return _server_error("Failed to analyze complaint text", exc)

    return {"success": True, "analysis": analysis.model_dump()}
