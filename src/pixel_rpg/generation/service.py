"""Content generation service.

Core code depends only on the ``GenerationService`` protocol. The
OpenAI-backed implementation converts every provider, network and parsing
failure into ``GenerationError`` so callers never see SDK exceptions.

Example:
    >>> service = OpenAIGenerationService.from_settings(get_settings().ai)
    >>> goblin = await service.generate_entity("sneaky goblin", EntityCategory.ENEMY, ["Dark"])
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    OpenAIError,
    RateLimitError,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pixel_rpg.core.config import AIProviderSettings
from pixel_rpg.core.constants import PLAYER_SPEAKER
from pixel_rpg.core.exceptions import GenerationError
from pixel_rpg.core.logging import get_logger
from pixel_rpg.generation import prompts
from pixel_rpg.generation.parsing import entity_from_payload, parse_json_object
from pixel_rpg.models.entities import ChatMessage, Entity
from pixel_rpg.models.enums import EntityCategory


logger = get_logger(__name__)

PROVIDER = "openai"

RETRYABLE_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError)


@runtime_checkable
class GenerationService(Protocol):
    """Call contract of the content generation collaborator."""

    async def generate_entity(
        self,
        prompt: str,
        category: EntityCategory,
        tags: Sequence[str] = (),
    ) -> Entity:
        """Create a fully populated entity from a text prompt.

        Raises:
            GenerationError: If generation fails or returns unusable data.
        """
        ...

    async def generate_dialogue_reply(
        self,
        persona: str | None,
        prior_turns: Sequence[ChatMessage],
        message: str,
        *,
        npc_name: str | None = None,
    ) -> str:
        """Produce the NPC's next line of dialogue.

        Raises:
            GenerationError: If the reply could not be produced.
        """
        ...


class OpenAIGenerationService:
    """GenerationService backed by an OpenAI-compatible API.

    Args:
        client: Async OpenAI client.
        text_model: Model for stats and dialogue.
        image_model: Model for portraits.
        generate_portraits: Whether to request portrait images.
        max_retries: Retry attempts for transient provider errors.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        text_model: str = "gpt-4o-mini",
        image_model: str = "gpt-image-1",
        generate_portraits: bool = True,
        max_retries: int = 3,
    ) -> None:
        self._client = client
        self.text_model = text_model
        self.image_model = image_model
        self.generate_portraits = generate_portraits
        self.max_retries = max_retries

    @classmethod
    def from_settings(cls, settings: AIProviderSettings) -> OpenAIGenerationService:
        """Create a service from provider settings.

        Raises:
            GenerationError: If no API key is configured.
        """
        if settings.openai_api_key is None:
            raise GenerationError("API key not configured", provider=PROVIDER)
        client = AsyncOpenAI(
            api_key=settings.openai_api_key.get_secret_value(),
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            max_retries=0,
        )
        return cls(
            client,
            text_model=settings.text_model,
            image_model=settings.image_model,
            generate_portraits=settings.generate_portraits,
            max_retries=settings.max_retries,
        )

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

    async def _call(self, operation: str, model_name: str, func: Any, **kwargs: Any) -> Any:
        """Run one provider call with retries and error conversion."""
        try:
            async for attempt in self._retrying():
                with attempt:
                    return await func(**kwargs)
        except RateLimitError as exc:
            raise GenerationError(
                f"Rate limit exceeded after {self.max_retries} retries",
                model=model_name,
                provider=PROVIDER,
            ) from exc
        except (APIConnectionError, APITimeoutError) as exc:
            raise GenerationError(
                f"Failed to connect to AI provider: {exc}",
                model=model_name,
                provider=PROVIDER,
            ) from exc
        except APIStatusError as exc:
            raise GenerationError(
                f"AI API error during {operation}: {exc}",
                model=model_name,
                provider=PROVIDER,
                details={"status_code": exc.status_code},
            ) from exc
        except OpenAIError as exc:
            raise GenerationError(
                f"{operation} failed: {exc}",
                model=model_name,
                provider=PROVIDER,
            ) from exc
        raise GenerationError(f"{operation} failed after all retries", model=model_name)

    @staticmethod
    def _message_content(response: Any, model_name: str) -> str | None:
        """Pull the first choice's text out of a chat completion.

        Raises:
            GenerationError: If the completion has no usable choice.
        """
        try:
            content = response.choices[0].message.content
        except (IndexError, AttributeError, TypeError) as exc:
            raise GenerationError(
                "Generation service returned a malformed completion",
                model=model_name,
                provider=PROVIDER,
            ) from exc
        if content is not None and not isinstance(content, str):
            raise GenerationError(
                "Generation service returned non-text content",
                model=model_name,
                provider=PROVIDER,
                details={"type": type(content).__name__},
            )
        return content

    # =========================================================================
    # Entities
    # =========================================================================

    async def _generate_portrait(self, prompt: str, tags: Sequence[str]) -> str:
        response = await self._call(
            "portrait generation",
            self.image_model,
            self._client.images.generate,
            model=self.image_model,
            prompt=prompts.PORTRAIT_PROMPT.format(
                prompt=prompt,
                tag_context=prompts.tag_context(list(tags)),
            ),
            n=1,
        )
        try:
            data = response.data[0] if response.data else None
            portrait = (data.b64_json or data.url) if data else None
        except (IndexError, AttributeError, TypeError) as exc:
            raise GenerationError(
                "Generation service returned a malformed image response",
                model=self.image_model,
                provider=PROVIDER,
            ) from exc
        if not portrait or not isinstance(portrait, str):
            raise GenerationError(
                "Failed to generate image asset",
                model=self.image_model,
                provider=PROVIDER,
            )
        return portrait

    async def generate_entity(
        self,
        prompt: str,
        category: EntityCategory,
        tags: Sequence[str] = (),
    ) -> Entity:
        logger.info("Generating entity", category=category.value, tags=list(tags))

        portrait = ""
        if self.generate_portraits:
            portrait = await self._generate_portrait(prompt, tags)

        response = await self._call(
            "entity generation",
            self.text_model,
            self._client.chat.completions.create,
            model=self.text_model,
            messages=[
                {
                    "role": "user",
                    "content": prompts.ENTITY_STATS_PROMPT.format(
                        category=category.value,
                        prompt=prompt,
                        tag_context=prompts.tag_context(list(tags)),
                    ),
                }
            ],
            response_format={"type": "json_object"},
        )
        data = parse_json_object(self._message_content(response, self.text_model))
        entity = entity_from_payload(
            data,
            category=category,
            tags=tuple(tags),
            prompt=prompt,
            portrait_ref=portrait,
        )
        logger.info("Entity generated", entity_id=entity.id, name=entity.name)
        return entity

    # =========================================================================
    # Dialogue
    # =========================================================================

    async def generate_dialogue_reply(
        self,
        persona: str | None,
        prior_turns: Sequence[ChatMessage],
        message: str,
        *,
        npc_name: str | None = None,
    ) -> str:
        system_prompt = prompts.NPC_SYSTEM_PROMPT.format(
            name=npc_name or "a villager",
            persona=persona or prompts.DEFAULT_PERSONA,
        )
        messages: list[dict[str, str]] = [{"role": "system", "content": system_prompt}]
        for turn in prior_turns:
            role = "user" if turn.sender == PLAYER_SPEAKER else "assistant"
            messages.append({"role": role, "content": turn.text})
        messages.append({"role": "user", "content": message})

        response = await self._call(
            "dialogue",
            self.text_model,
            self._client.chat.completions.create,
            model=self.text_model,
            messages=messages,
        )
        reply = (self._message_content(response, self.text_model) or "").strip()
        return reply or "..."


__all__ = [
    "GenerationService",
    "OpenAIGenerationService",
]
