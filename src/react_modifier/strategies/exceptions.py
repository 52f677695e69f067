"""Exceptions for strategy executors."""


class StrategyError(Exception):
    """Base exception for all strategy executors."""


class IntegrationError(StrategyError):
    """Raised when a component analysis cannot be integrated."""
