"""Domain-specific errors for omnictl."""


class RobotLinkError(Exception):
    """Base error for omnictl."""


class ProfileValidationError(RobotLinkError):
    """Raised when a robot profile does not conform to schema or semantics."""


class ProfileLoadError(RobotLinkError):
    """Raised when loading profile sources fails."""


class DeviceNotFound(RobotLinkError):
    """Raised when no device advertising the profile name was found."""


class ChannelUnavailable(RobotLinkError):
    """Raised when the service or one of the channels is missing after discovery."""


class NotConnectedError(RobotLinkError):
    """Raised when an operation needs a connected session and there is none."""


class EncodeRangeError(RobotLinkError):
    """Raised when a value cannot be represented on its channel."""


class InvalidCommandError(RobotLinkError):
    """Raised when a text command does not match the command grammar."""


class DecodeError(RobotLinkError):
    """Raised when a config payload is not a valid config document."""


class TransportError(RobotLinkError):
    """Base transport error."""


class TransportConnectFailure(TransportError):
    """Raised on link-level connect failures."""


class TransportWriteError(TransportError):
    """Raised when a channel read or write fails."""
