"""Custom exception types used across the project."""


class RLBridgeError(Exception):
    """Base exception for the project."""


class RegistryError(RLBridgeError):
    """Raised when a registry lookup fails."""


class ConfigurationError(RLBridgeError):
    """Raised when configuration is invalid or incomplete."""


class DimensionMismatchError(RLBridgeError, ValueError):
    """Raised when an observation/action length does not match the configured dims."""


class NotInitializedError(RLBridgeError, RuntimeError):
    """Raised when an agent operation is attempted before initialization."""


class InsufficientDataError(RLBridgeError):
    """Raised when the replay buffer holds fewer transitions than requested."""


class PolicyFileNotFoundError(RLBridgeError, FileNotFoundError):
    """Raised when a policy file to load does not exist."""


class ArchitectureMismatchError(RLBridgeError):
    """Raised when a policy file header does not match the configured networks."""
