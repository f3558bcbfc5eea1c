"""
Exceptions Module
Purpose: Error taxonomy for the billing reconciliation run
"""

from typing import Any, Optional


class NetBirdReportError(Exception):
    """Base error for the report tool"""


class ConfigurationError(NetBirdReportError):
    """Missing credential or unusable configuration (fatal at startup)"""


class FetchError(NetBirdReportError):
    """A single upstream API call failed (non-200, transport error, bad JSON)"""

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        description: str = "",
        status_code: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.description = description
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message
