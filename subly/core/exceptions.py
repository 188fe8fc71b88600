"""Custom exception types for the Subly core."""


class AppError(Exception):
    """Base app exception."""


class ValidationError(AppError):
    """Invalid data found on a stored record or in user input."""


class UnsupportedBillingCycleError(ValidationError):
    """Billing cycle is neither monthly nor annual."""


class ConfigurationError(AppError):
    """A required setting for an integration is missing."""


class IntegrationError(AppError):
    """External integration call failure."""
