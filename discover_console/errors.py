"""
Errors raised by the discover console.
"""
from typing import Optional


class FetchError(Exception):
    """
    A backend read failed.

    Covers transport errors, non-success responses and payloads that
    could not be parsed. Callers treat every cause the same way.
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.status_code = status_code

    def __str__(self) -> str:
        if self.endpoint:
            return f"{self.endpoint}: {self.message}"
        return self.message
