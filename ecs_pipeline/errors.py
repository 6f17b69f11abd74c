"""Composition errors raised before any template is synthesized."""


class TopologyError(ValueError):
    """Base class for configuration and composition failures."""


class ConfigParseError(TopologyError):
    """A serialized list/record field is present but malformed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Invalid value for '{key}': {reason}")
        self.key = key
        self.reason = reason


class MissingRequiredFieldError(TopologyError):
    """A field required by the active branch is absent."""

    def __init__(self, key: str, reason: str = "") -> None:
        message = f"Missing required field '{key}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.key = key


class AmbiguousShapeError(TopologyError):
    """The DNS binder received a target it cannot classify."""
