"""Remediation text shown next to degraded provider widgets."""

from __future__ import annotations

from pulseboard.errors.types import ErrorCategory

REMEDIATION_TEMPLATES: dict[ErrorCategory, str] = {
    ErrorCategory.EXPIRED: (
        "The {provider} access token expired and could not be renewed. "
        "Reconnect {provider} in settings."
    ),
    ErrorCategory.REVOKED: (
        "The {provider} authorization was revoked. "
        "Reconnect {provider} in settings to grant access again."
    ),
    ErrorCategory.AUTHENTICATION: (
        "Check the {provider} API key or token configured for this project."
    ),
    ErrorCategory.RATE_LIMITED: (
        "{provider} is rate limiting requests. Data will refresh on a later pass."
    ),
    ErrorCategory.NETWORK: "Check your internet connection. Retrying on the next pass.",
    ErrorCategory.TIMEOUT: (
        "{provider} did not answer in time. Retrying on the next pass."
    ),
    ErrorCategory.PROVIDER: (
        "The {provider} service may be experiencing issues. Retrying on the next pass."
    ),
    ErrorCategory.CONFIGURATION: (
        "Run 'pulseboard config show' and check the project's integrations."
    ),
}


def get_remediation(category: ErrorCategory, provider: str | None = None) -> str | None:
    """Get remediation text for an error category.

    Args:
        category: Error category
        provider: Provider kind, used to fill in the template

    Returns:
        Remediation message or None
    """
    template = REMEDIATION_TEMPLATES.get(category)
    if template is None:
        return None
    return template.format(provider=provider or "the provider")
