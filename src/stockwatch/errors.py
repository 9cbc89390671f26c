"""Custom exceptions for clearer error handling across the package."""


class StockwatchError(Exception):
    """Base exception for all package-specific errors."""


class ConfigError(StockwatchError, ValueError):
    """Raised when environment configuration is invalid or missing."""


class QuoteSourceError(StockwatchError):
    """Raised when market data retrieval fails."""


class DecodeError(QuoteSourceError):
    """Raised when a provider payload cannot be decoded."""


class InvalidRequestError(QuoteSourceError):
    """Raised when a request cannot be built from the given arguments."""
