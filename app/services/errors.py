"""
SafeMed - EMR access errors
"""

from typing import Optional


class EMRGatewayError(Exception):
    """Raised when a patient/encounter operation cannot be completed"""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"EMR error {status_code}: {message}")


class EMRClientError(EMRGatewayError):
    """Remote 4xx, or an unknown record in the mock store. Surfaced to the caller."""


class EMRUnavailableError(EMRGatewayError):
    """Network/DNS failure, timeout, remote 5xx or undecodable body. Triggers the mock fallback."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(status_code or 503, message)


class PromptParseError(EMRGatewayError):
    """A prompt could not be turned into a record"""

    def __init__(self, message: str) -> None:
        super().__init__(422, message)
