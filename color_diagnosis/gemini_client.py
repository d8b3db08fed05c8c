"""
Gemini client used as the diagnosis model.

A single async call per diagnosis; no retry and no timeout beyond the
google-genai transport default.
"""
import logging
from typing import Optional

from google import genai
from google.genai import types

from .config import DEFAULT_MODEL
from .models import MediaPart

logger = logging.getLogger(__name__)


class GeminiDiagnosisModel:
    """Wraps google-genai for text or text+image generation."""

    def __init__(self, model_name: str = DEFAULT_MODEL):
        self.client: Optional[genai.Client] = None
        self.model_name = model_name

    @property
    def available(self) -> bool:
        return self.client is not None

    def initialize(self, api_key: Optional[str]):
        """Initialize the Gemini client."""
        if not api_key:
            raise RuntimeError(
                "No Gemini API key found. Set GEMINI_API_KEY or GOOGLE_API_KEY "
                "environment variable."
            )
        self.client = genai.Client(api_key=api_key)
        logger.info(f"Gemini client initialized with model: {self.model_name}")

    async def generate(self, prompt: str, media: Optional[list[MediaPart]] = None) -> str:
        """Send the prompt (and any attachments) and return the reply text."""
        if self.client is None:
            raise RuntimeError("Gemini client not initialized. Call initialize() first.")

        contents: list = [prompt]
        for part in media or []:
            contents.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))

        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=contents,
        )
        text = response.text
        if text is None:
            raise RuntimeError(f"Gemini returned no text for model={self.model_name}")
        logger.info(f"Gemini response: {len(text)} chars")
        return text
