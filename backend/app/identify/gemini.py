"""Google Gemini identifier implementation.

This module provides a PlantIdentifier that sends the photo inline to a
Gemini model using the official ``google-genai`` SDK.

Usage:
    identifier = GeminiIdentifier(api_key="...")
    if identifier.health_check():
        text = identifier.identify(image)
"""
import logging
from typing import Optional

from google import genai
from google.genai import types

from .base import ImagePart, PlantIdentifier
from .errors import AnalysisFailure
from .prompts import PLANT_IDENTIFICATION_PROMPT

logger = logging.getLogger(__name__)


class GeminiIdentifier(PlantIdentifier):
    """PlantIdentifier implementation using the Gemini API.

    Attributes:
        api_key: Gemini API key for authentication.
        model: Gemini model to use (default: gemini-1.5-flash).
        prompt: Instruction sent before the image.
    """

    DEFAULT_MODEL = "gemini-1.5-flash"

    def __init__(
        self,
        api_key: Optional[str],
        model: Optional[str] = None,
        temperature: float = 0.4,
        top_k: int = 32,
        top_p: float = 1.0,
        max_output_tokens: int = 4096,
        prompt: Optional[str] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.prompt = prompt or PLANT_IDENTIFICATION_PROMPT
        self.generation_config = types.GenerateContentConfig(
            temperature=temperature,
            top_k=top_k,
            top_p=top_p,
            max_output_tokens=max_output_tokens,
        )
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        """Get or create the Gemini client.

        Raises:
            AnalysisFailure: If no API key is configured.
        """
        if self._client is None:
            if not self.api_key:
                raise AnalysisFailure("Gemini API key is not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def health_check(self) -> bool:
        """Check if the configured model is reachable.

        Returns:
            bool: True if the model metadata could be fetched, False otherwise.
        """
        try:
            self._get_client().models.get(model=self.model)
            return True
        except Exception as e:
            logger.warning(f"Gemini health check failed: {e}")
            return False

    def identify(self, image: ImagePart) -> str:
        """Send the prompt and photo to Gemini and return the answer text.

        Raises:
            AnalysisFailure: If the model returns no candidates or no text.
            Exception: If the API call itself fails.
        """
        client = self._get_client()

        response = client.models.generate_content(
            model=self.model,
            contents=[
                types.Content(
                    role="user",
                    parts=[
                        types.Part(text=self.prompt),
                        types.Part(
                            inline_data=types.Blob(
                                mime_type=image.mime_type,
                                data=image.data,
                            )
                        ),
                    ],
                )
            ],
            config=self.generation_config,
        )

        if not response.candidates:
            raise AnalysisFailure("No response generated")
        text = response.text
        if not text or not text.strip():
            raise AnalysisFailure("No response generated")
        return text.strip()
