class BridgeError(Exception):
    """Base class for errors raised by the stream bridge."""
    pass

class ConfigurationError(BridgeError):
    """Raised when the environment does not describe a usable bridge configuration."""
    pass

class GroupInitializationError(BridgeError):
    """Raised when a consumer group cannot be created for a reason other than already existing."""

    def __init__(self, stream: str, group: str, reason: str) -> None:
        self.stream = stream
        self.group = group
        self.reason = reason
        super().__init__(f"Failed to create group '{group}' on stream '{stream}': {reason}")
