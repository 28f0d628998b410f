"""Exception hierarchy for selfheal."""


class SelfHealError(Exception):
    """Base exception for all selfheal errors."""


class StrategyError(SelfHealError):
    """Raised inside a strategy when the page cannot be read as expected."""


class StorageError(SelfHealError):
    """Raised when storage operations fail."""


class StorageUnavailableError(StorageError):
    """Raised when the durable backend cannot be initialized."""


class ConfigError(SelfHealError):
    """Raised when configuration is invalid."""
