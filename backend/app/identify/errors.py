"""Exceptions raised by the identification layer."""

GENERIC_ANALYSIS_ERROR = "An error occurred while analyzing the image. Please try again."


class AnalysisFailure(Exception):
    """Raised when the model produced no usable identification.

    ``message`` is the internal reason and is only logged; users always see
    ``user_message``.
    """
    def __init__(self, message: str, user_message: str = GENERIC_ANALYSIS_ERROR):
        self.message = message
        self.user_message = user_message
        super().__init__(message)
