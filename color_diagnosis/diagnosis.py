"""
Diagnosis pipeline: rate check, service check, input validation, prompt,
Gemini call, JSON extraction and response shaping, in that order.

Persistence is not done here; the caller schedules the returned usage record
after the response has been sent.
"""
from typing import Any, Optional

from pydantic import ValidationError

from .config import MODE_DATA, MODE_IMAGE
from .errors import InvalidInput, MalformedResponse, ModelInvocationFailure, ServiceUnavailable
from .json_utils import extract_json
from .models import (
    DIAGNOSIS_FIELDS,
    NULLABLE_FIELDS,
    DataDiagnoseRequest,
    DiagnoseResponse,
    ImageDiagnoseRequest,
    MediaPart,
    UsageRecord,
)
from .prompt_builder import build_data_prompt, build_image_prompt, decode_image
from .rate_limiter import RateLimiter, check_rate_limit
from .storage import build_image_usage_record, build_usage_record
from .structured_logging import StructuredLogger, mask_ip

logger = StructuredLogger(__name__)


def shape_diagnosis(diagnosis: dict) -> dict:
    """Copy the allow-listed fields verbatim; anything else is dropped."""
    shaped = {key: diagnosis[key] for key in DIAGNOSIS_FIELDS if key in diagnosis}
    for key in NULLABLE_FIELDS:
        shaped[key] = diagnosis.get(key) or None
    return shaped


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return f"Invalid {location}: {message}" if location else message


class DiagnosisOrchestrator:
    """Runs one diagnosis request through every stage."""

    def __init__(self, limiter: RateLimiter, model, mode: str = MODE_DATA, enabled: bool = True):
        self.limiter = limiter
        self.model = model
        self.mode = mode
        self.enabled = enabled

    @property
    def available(self) -> bool:
        return self.enabled and self.model is not None and self.model.available

    def _check_service(self):
        if not self.enabled:
            raise ServiceUnavailable("Demo diagnosis is disabled.")
        if self.model is None or not self.model.available:
            raise ServiceUnavailable()

    def _validate_data(self, payload: dict) -> DataDiagnoseRequest:
        face = payload.get("faceAnalysis")
        if not face or (isinstance(face, dict) and face.get("error")):
            raise InvalidInput("Face analysis data is required.")
        try:
            return DataDiagnoseRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidInput(_validation_message(e))

    def _validate_image(self, payload: dict) -> tuple[ImageDiagnoseRequest, MediaPart, Optional[MediaPart]]:
        if not payload.get("image"):
            raise InvalidInput("Image is required.")
        try:
            request = ImageDiagnoseRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidInput(_validation_message(e))
        face = decode_image(request.image, request.mimeType, label="Image")
        body = None
        if request.bodyImage:
            body = decode_image(request.bodyImage, request.bodyMimeType, label="Body image")
        return request, face, body

    async def _invoke(self, prompt: str, media: Optional[list[MediaPart]] = None) -> dict:
        try:
            raw = await self.model.generate(prompt, media)
        except Exception as e:
            logger.error("Gemini call failed", error=str(e), error_type=type(e).__name__)
            raise ModelInvocationFailure() from e
        try:
            return extract_json(raw)
        except MalformedResponse as e:
            logger.error("Gemini reply was not JSON", error=str(e), response_chars=len(raw))
            raise

    async def diagnose(self, payload: Any, client_id: str) -> tuple[DiagnoseResponse, UsageRecord]:
        """Produce the API response and the usage record to persist.

        Raises:
            RateLimited, ServiceUnavailable, InvalidInput,
            ModelInvocationFailure, MalformedResponse
        """
        check_rate_limit(self.limiter, client_id)
        self._check_service()

        if not isinstance(payload, dict):
            raise InvalidInput("Request body must be a JSON object.")

        if self.mode == MODE_IMAGE:
            image_request, face, body = self._validate_image(payload)
            logger.info(
                "Diagnosis request",
                mode=MODE_IMAGE,
                client_ip=mask_ip(client_id),
                age=image_request.age,
                body_image=body is not None,
            )
            prompt, media = build_image_prompt(face, body, image_request.age)
            diagnosis = await self._invoke(prompt, media)
            record = build_image_usage_record(image_request, diagnosis)
        else:
            data_request = self._validate_data(payload)
            logger.info(
                "Diagnosis request",
                mode=MODE_DATA,
                client_ip=mask_ip(client_id),
                age=data_request.age,
                gender=data_request.gender,
                lang=data_request.lang,
            )
            prompt = build_data_prompt(data_request)
            diagnosis = await self._invoke(prompt)
            record = build_usage_record(data_request, diagnosis)

        logger.info(
            "Diagnosis result",
            personal_color=diagnosis.get("personalColor"),
            face_shape=diagnosis.get("faceShape"),
            body_type=diagnosis.get("bodyType"),
        )
        return DiagnoseResponse(diagnosis=shape_diagnosis(diagnosis)), record
