from loguru import logger
from openai import AsyncOpenAI, OpenAIError

from messaging_toolkit.llms.base import LLM, LLMMessage, Roles


class OpenAILLM(LLM):
    """'LLM' backed by the OpenAI chat completions API (or any compatible server via 'base_url')."""

    def __init__(
        self,
        model_name: str = "gpt-4o-mini",
        temperature: float = 0.5,
        seed: int | None = None,
        openai_api_key: str | None = None,
        base_url: str | None = None,
    ) -> None:
        self.model_name = model_name
        self.temperature = temperature
        self.seed = seed
        self.client = AsyncOpenAI(api_key=openai_api_key or None, base_url=base_url)

    def _messages(self, conversation: list[LLMMessage]) -> list[dict[str, str]]:
        return [{"role": message.role.value, "content": message.content} for message in conversation]

    async def generate(self, conversation: list[LLMMessage]) -> LLMMessage:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model_name,
                messages=self._messages(conversation),  # type: ignore[arg-type]
                temperature=self.temperature,
                seed=self.seed,
            )
        except OpenAIError as exc:
            logger.error(f"OpenAI completion failed ({self.model_name}): {exc}")
            raise
        return LLMMessage(role=Roles.ASSISTANT, content=completion.choices[0].message.content or "")
