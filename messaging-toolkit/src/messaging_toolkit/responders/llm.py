from loguru import logger

from messaging_toolkit.api.payloads import ResponderRequest
from messaging_toolkit.llms.base import LLM, LLMMessage, Roles
from messaging_toolkit.responders.base import Responder

DEFAULT_SYSTEM_PROMPT = (
    "You are {assistant_name}, a financial wellness coach. "
    "Help the user keep their money habits on track with short, practical and friendly answers. "
    "Do not invent account data; ask a follow-up question when information is missing."
)


class LLMResponder(Responder):
    """
    Responder that answers each message with a single LLM call.

    No conversation history is kept: message content lives in the transport,
    so each reply is produced from the persona prompt and the latest message.
    """

    def __init__(self, llm: LLM, assistant_name: str, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
        self.llm = llm
        self.system_prompt = system_prompt.format(assistant_name=assistant_name)

    async def respond(self, request: ResponderRequest) -> str | None:
        text = request.message_text.strip()
        if not text:
            return None
        answer = await self.llm.generate(
            [
                LLMMessage(role=Roles.SYSTEM, content=self.system_prompt),
                LLMMessage(role=Roles.USER, content=text),
            ]
        )
        logger.debug(f"LLM reply for {request.sender_user_id}: {answer.content[:80]!r}")
        return answer.content
