"""
Error taxonomy shared by the orchestration core.

Every failure that crosses the orchestrator boundary is one of these types so
the HTTP layer can translate it into a status code and an '{"error": ...}'
body without inspecting messages. Concrete identity and transport backends
wrap their SDK exceptions into 'IdentityServiceError' / 'TransportError'.
"""


class MessagingError(Exception):
    """Base class for all orchestration failures."""


class NotFoundError(MessagingError):
    """A referenced user or thread does not exist."""


class ForbiddenError(MessagingError):
    """The user is not a participant of the requested thread."""


class ValidationError(MessagingError):
    """The request is well-formed but not allowed (self-DM, wrong role)."""


class IdentityServiceError(MessagingError):
    """The external identity service failed to mint an identity or a token."""


class TransportError(MessagingError):
    """The chat transport failed or returned an unusable response."""
