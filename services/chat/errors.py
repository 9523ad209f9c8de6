"""Exceptions raised while running a conversation turn."""


class ChatError(Exception):
    """Base class for conversation failures."""


class ProviderNotReadyError(ChatError):
    """The model provider client could not be initialized."""


class ProviderError(ChatError):
    """A provider call failed (network, API or malformed response)."""


class PathwayError(ChatError):
    """A generation pathway could not produce a result."""


class EmptyArtifactError(PathwayError):
    """The provider returned no usable image or text."""


class MissingEditImageError(PathwayError):
    """The image-edit model was selected without an image to edit."""
