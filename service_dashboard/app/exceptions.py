"""
Errors raised while serving metric bundles.
"""

from typing import Optional

from shared.errors import DashboardException


class ConfigurationError(DashboardException):
    """Requested metric type has no configured file list."""

    status_code = 404

    def __init__(self, message: str, metric_type: Optional[str] = None):
        details = {"metric_type": metric_type} if metric_type is not None else {}
        super().__init__("CONFIGURATION_ERROR", message, details)
        self.metric_type = metric_type


class FetchError(DashboardException):
    """A metric file could not be downloaded from the object store."""

    status_code = 502

    def __init__(self, metric_type: str, file_name: str, cause: BaseException):
        super().__init__(
            "FETCH_ERROR",
            f"Failed to download {file_name} for {metric_type} metrics",
            {"metric_type": metric_type, "file": file_name, "cause": str(cause) or type(cause).__name__},
        )
        self.metric_type = metric_type
        self.file_name = file_name
        self.cause = cause


class DecodeError(DashboardException):
    """A downloaded metric file is neither empty nor valid JSON."""

    status_code = 502

    def __init__(self, metric_type: str, file_name: str, reason: str):
        super().__init__(
            "DECODE_ERROR",
            f"Metric file {file_name} is not valid JSON",
            {"metric_type": metric_type, "file": file_name, "reason": reason},
        )
        self.metric_type = metric_type
        self.file_name = file_name
