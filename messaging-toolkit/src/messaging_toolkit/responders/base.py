"""
Responder abstraction.

A responder is the automated-reply generator behind the assistant. It receives
the text a human just sent in an assistant conversation and either returns the
reply directly, or returns None when the reply will be delivered later by an
external service calling back into the orchestrator.

Concrete implementations: 'LLMResponder', 'WebhookResponder', 'NullResponder'.
"""

from abc import ABC, abstractmethod

from messaging_toolkit.api.payloads import ResponderRequest


class Responder(ABC):
    @abstractmethod
    async def respond(self, request: ResponderRequest) -> str | None:
        pass


class NullResponder(Responder):
    """Never answers; used when no responder backend is configured."""

    async def respond(self, request: ResponderRequest) -> str | None:
        return None
