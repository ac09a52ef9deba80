"""PlantIdentifier abstract interface for multimodal model integrations.

Each identifier takes one photo and returns the model's free-text answer.

Usage:
    from app.identify import GeminiIdentifier, ImagePart

    identifier = GeminiIdentifier(api_key="...")
    text = identifier.identify(ImagePart.from_file(path, "image/jpeg"))
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Union


@dataclass
class ImagePart:
    """An image ready to be sent inline to a model.

    Attributes:
        data: Raw image bytes.
        mime_type: MIME type of the image (e.g. image/jpeg).
    """
    data: bytes
    mime_type: str

    @classmethod
    def from_file(cls, path: Union[str, Path], mime_type: str) -> "ImagePart":
        return cls(data=Path(path).read_bytes(), mime_type=mime_type)


class PlantIdentifier(ABC):
    """Abstract base class for plant identification backends.

    Methods:
        health_check: Verify the backend is operational.
        identify: Describe the plant in a photo.
    """

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the backing model service is reachable.

        Returns:
            bool: True if the service is operational, False otherwise.
        """
        pass

    @abstractmethod
    def identify(self, image: ImagePart) -> str:
        """Identify the plant in *image*.

        Args:
            image: The photo to analyse.

        Returns:
            str: The model's answer, formatted as markdown.

        Raises:
            Exception: If the request fails or yields no usable answer.
        """
        pass
