"""Haiku domain exceptions."""

from src.core.domain.exceptions import ServiceUnavailableError, UpstreamError


class HaikuGenerationError(UpstreamError):
    """The LLM call failed or returned something that is not a haiku."""

    error_code = "HAIKU_GENERATION_FAILED"

    def __init__(self, message: str = "Failed to generate haiku"):
        super().__init__(message)


class HaikuUnavailableError(ServiceUnavailableError):
    """Haiku generation is disabled or no API key is configured."""

    error_code = "HAIKU_UNAVAILABLE"

    def __init__(self, message: str = "Haiku generation is not configured"):
        super().__init__(message)
