from __future__ import annotations

import json
import logging
import re
from typing import Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import BackendMode, ProviderName, Settings
from .prompts import STRUCTURE_MARKER

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ProviderError(RuntimeError):
    """Transport, HTTP status or configuration failure of a single provider."""


class GenerationFailed(RuntimeError):
    def __init__(self, message: str, errors: Optional[list[str]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def extract_json_text(raw: str) -> str:
    text = raw.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1)
    return text


def parse_payload(raw: str, schema: Type[SchemaT]) -> SchemaT:
    data = json.loads(extract_json_text(raw))
    return schema.model_validate(data)


class TextProvider:
    name: str = "base"

    def invoke(self, system_prompt: str, user_prompt: str) -> str:
        raise NotImplementedError


class AnthropicProvider(TextProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        timeout: float,
        max_tokens: int = 3000,
        temperature: float = 0.7,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = None
        if api_key:
            import anthropic

            self.client = anthropic.Anthropic(
                api_key=api_key,
                timeout=timeout,
                max_retries=0,
                http_client=http_client,
            )

    def invoke(self, system_prompt: str, user_prompt: str) -> str:
        if self.client is None:
            raise ProviderError("ANTHROPIC_API_KEY is not configured")
        import anthropic

        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APIStatusError as exc:
            raise ProviderError(f"Anthropic API error: {exc.status_code}") from exc
        except anthropic.APIError as exc:
            raise ProviderError(f"Anthropic request failed: {type(exc).__name__}: {exc}") from exc
        for block in message.content:
            text = getattr(block, "text", None)
            if text:
                return text
        raise ProviderError("Anthropic returned an empty response")


class OpenAIProvider(TextProvider):
    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        timeout: float,
        max_tokens: int = 3000,
        temperature: float = 0.7,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = None
        if api_key:
            from openai import OpenAI

            if http_client is None:
                import certifi

                http_client = httpx.Client(
                    timeout=httpx.Timeout(timeout, connect=10.0),
                    trust_env=False,
                    verify=certifi.where(),
                    limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                )
            self.client = OpenAI(
                api_key=api_key,
                timeout=timeout,
                max_retries=0,
                http_client=http_client,
            )

    def invoke(self, system_prompt: str, user_prompt: str) -> str:
        if self.client is None:
            raise ProviderError("OPENAI_API_KEY is not configured")
        import openai

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as exc:
            raise ProviderError(f"OpenAI API error: {exc.status_code}") from exc
        except openai.APIError as exc:
            raise ProviderError(f"OpenAI request failed: {type(exc).__name__}: {exc}") from exc
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderError("OpenAI returned an empty response")
        return content


class LLMClient:
    name: str = "base"

    def generate(self, system_prompt: str, user_prompt: str, schema: Type[SchemaT]) -> SchemaT:
        raise NotImplementedError


class GenerationClient(LLMClient):
    """Primary provider first, then exactly one attempt on the secondary."""

    name = "generation"

    def __init__(self, primary: TextProvider, secondary: TextProvider) -> None:
        self.primary = primary
        self.secondary = secondary

    def generate(self, system_prompt: str, user_prompt: str, schema: Type[SchemaT]) -> SchemaT:
        errors: list[str] = []
        for role, provider in (("primary", self.primary), ("secondary", self.secondary)):
            try:
                raw = provider.invoke(system_prompt, user_prompt)
                return parse_payload(raw, schema)
            except ProviderError as exc:
                detail = f"{provider.name}: {exc}"
            except (json.JSONDecodeError, ValidationError) as exc:
                detail = f"{provider.name}: invalid {schema.__name__} payload: {exc}"
            errors.append(detail)
            if role == "primary":
                logger.warning("Primary provider failed, trying secondary (%s)", detail)
        raise GenerationFailed(
            f"{schema.__name__} generation failed on all providers",
            errors=errors,
        )


class MockLLMClient(LLMClient):
    """Demo backend: answers with the example structure embedded in the prompt."""

    name = "mock"

    def generate(self, system_prompt: str, user_prompt: str, schema: Type[SchemaT]) -> SchemaT:
        if STRUCTURE_MARKER not in system_prompt:
            raise GenerationFailed(f"Prompt carries no structure for {schema.__name__}")
        structure = system_prompt.split(STRUCTURE_MARKER, 1)[1]
        try:
            return parse_payload(structure, schema)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise GenerationFailed(
                f"Demo structure does not match {schema.__name__}", errors=[str(exc)]
            ) from exc


def build_provider(name: ProviderName, settings: Settings) -> TextProvider:
    if name == ProviderName.anthropic:
        return AnthropicProvider(
            settings.anthropic_api_key,
            settings.anthropic_model,
            timeout=settings.llm_timeout_seconds,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
    return OpenAIProvider(
        settings.openai_api_key,
        settings.openai_model,
        timeout=settings.llm_timeout_seconds,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )


def get_llm_client(settings: Settings, mode: BackendMode) -> LLMClient:
    if mode == BackendMode.demo:
        if settings.is_production():
            raise RuntimeError("The demo backend cannot run in production")
        return MockLLMClient()
    return GenerationClient(
        primary=build_provider(settings.primary_provider, settings),
        secondary=build_provider(settings.secondary_provider, settings),
    )
