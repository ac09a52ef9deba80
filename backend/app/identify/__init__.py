"""Plant identification module.

This module sends a staged photo to a multimodal model and returns its
answer. There is one implementation, GeminiIdentifier, behind the
PlantIdentifier interface.

Usage:
    from app.identify import GeminiIdentifier, set_identifier, identify_upload

    set_identifier(GeminiIdentifier(api_key="..."))
    text = await identify_upload(record)
"""
from .base import ImagePart, PlantIdentifier
from .errors import GENERIC_ANALYSIS_ERROR, AnalysisFailure
from .gemini import GeminiIdentifier
from .prompts import PLANT_IDENTIFICATION_PROMPT
from .wrapper import get_identifier, identify_upload, set_identifier

__all__ = [
    "ImagePart",
    "PlantIdentifier",
    "GeminiIdentifier",
    "PLANT_IDENTIFICATION_PROMPT",
    "AnalysisFailure",
    "GENERIC_ANALYSIS_ERROR",
    "get_identifier",
    "set_identifier",
    "identify_upload",
]
