"""Error handling for pulseboard."""

from pulseboard.errors.classify import classify_exception
from pulseboard.errors.classify import classify_http_status_error
from pulseboard.errors.messages import REMEDIATION_TEMPLATES
from pulseboard.errors.messages import get_remediation
from pulseboard.errors.types import CATEGORY_SEVERITY
from pulseboard.errors.types import HTTP_ERROR_MAPPINGS
from pulseboard.errors.types import ErrorCategory
from pulseboard.errors.types import ErrorSeverity
from pulseboard.errors.types import HTTPErrorMapping
from pulseboard.errors.types import PulseError
from pulseboard.errors.types import classify_http_error
from pulseboard.errors.types import severity_for

__all__ = [
    # Core types
    "ErrorCategory",
    "ErrorSeverity",
    "PulseError",
    "HTTPErrorMapping",
    "HTTP_ERROR_MAPPINGS",
    "CATEGORY_SEVERITY",
    "severity_for",
    # Classification functions
    "classify_http_error",
    "classify_exception",
    "classify_http_status_error",
    # Message templates
    "REMEDIATION_TEMPLATES",
    "get_remediation",
]
