"""LLM client for the content generator.

Wraps LiteLLM with structured output support: the response is validated
against a Pydantic model and returned together with the token usage the
provider reported.
"""

from __future__ import annotations

import asyncio
import logging
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from litellm import Timeout, acompletion
from pydantic import BaseModel, ValidationError

from src.content.config import ContentConfig, get_content_config
from src.content.models import TokenUsage

if TYPE_CHECKING:
    from src.credentials import SecretAccessor

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

warnings.filterwarnings(
    "ignore",
    message=r"(?s)^Pydantic serializer warnings:.*",
    category=UserWarning,
)


class LLMError(Exception):
    """Exception raised when LLM operations fail.

    When the provider answered but the answer was unusable, `usage` and
    `model` carry what the provider charged for.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        usage: TokenUsage | None = None,
        model: str | None = None,
    ):
        super().__init__(message)
        self.original_error = original_error
        self.usage = usage
        self.model = model


@dataclass
class StructuredCompletion(Generic[T]):
    """A validated structured response plus its accounting."""

    parsed: T
    usage: TokenUsage
    model: str


class ContentLLM:
    """LLM client for document content.

    The provider API key comes from the config when set, otherwise from the
    secret accessor under ``api_key_secret_name``.
    """

    def __init__(
        self,
        config: ContentConfig | None = None,
        secret_accessor: SecretAccessor | None = None,
    ):
        self.config = config or get_content_config()
        self.secret_accessor = secret_accessor

    def _get_model_name(self) -> str:
        """Get the model name formatted for LiteLLM."""
        model = self.config.llm_model
        if "/" in model:
            return model
        # Custom endpoints are OpenAI-compatible
        if self.config.llm_base_url:
            return f"openai/{model}"
        if self.config.llm_provider == "openai":
            return model
        return f"{self.config.llm_provider}/{model}"

    async def _resolve_api_key(self) -> str | None:
        if self.config.llm_api_key:
            return self.config.llm_api_key
        if self.secret_accessor is None:
            return None
        return await self.secret_accessor.get_secret(self.config.api_key_secret_name)

    async def generate_structured(
        self,
        prompt: str,
        output_model: type[T],
        system_prompt: str | None = None,
    ) -> StructuredCompletion[T]:
        """Generate structured output matching a Pydantic model.

        Args:
            prompt: The user prompt to send to the LLM.
            output_model: Pydantic model class defining the expected output.
            system_prompt: Optional system prompt for context.

        Returns:
            StructuredCompletion with the parsed model, token usage and the
            model name the provider reported.

        Raises:
            LLMError: If the call fails or the response cannot be parsed.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            api_key = await self._resolve_api_key()
        except Exception as e:
            raise LLMError(f"Could not resolve LLM API key: {e}", e) from e

        last_error: Exception | None = None
        for attempt in range(self.config.llm_max_retries + 1):
            try:
                response = await self._call_completion(
                    messages=messages,
                    response_format=output_model,
                    api_key=api_key,
                )
                usage = self._extract_usage(response)
                model = getattr(response, "model", None) or self.config.llm_model
                try:
                    parsed = self._parse_response(response, output_model)
                except LLMError as e:
                    e.usage = usage
                    e.model = model
                    raise
                return StructuredCompletion(parsed=parsed, usage=usage, model=model)

            except LLMError:
                # Parse/validation errors are not retried
                raise

            except Timeout as e:
                raise LLMError(
                    f"LLM request timed out (timeout={self.config.llm_timeout}s). "
                    "Increase `GENERATOR_LLM_TIMEOUT` or use a faster model.",
                    e,
                ) from e

            except Exception as e:
                last_error = e
                if attempt < self.config.llm_max_retries:
                    is_rate_limit = "rate_limit" in str(e).lower() or "429" in str(e)
                    wait_time = (8 if is_rate_limit else 2) * (attempt + 1)
                    logger.warning(
                        f"LLM call failed (attempt {attempt + 1}), retrying in {wait_time}s: {e}"
                    )
                    await asyncio.sleep(wait_time)
                else:
                    raise LLMError(f"LLM call failed: {e}", e) from e

        raise LLMError(f"LLM call failed: {last_error}", last_error)

    async def _call_completion(
        self,
        messages: list[dict],
        response_format: type[BaseModel] | None = None,
        api_key: str | None = None,
    ):
        """Make the actual LLM API call."""
        kwargs = {
            "model": self._get_model_name(),
            "messages": messages,
            "timeout": self.config.llm_timeout,
            "temperature": self.config.temperature,
        }
        if api_key:
            kwargs["api_key"] = api_key
        if self.config.llm_base_url:
            kwargs["base_url"] = self.config.llm_base_url
        if response_format:
            kwargs["response_format"] = response_format

        return await acompletion(**kwargs)

    @staticmethod
    def _extract_usage(response) -> TokenUsage:
        usage = getattr(response, "usage", None)
        if usage is None:
            return TokenUsage()
        prompt = getattr(usage, "prompt_tokens", 0) or 0
        completion = getattr(usage, "completion_tokens", 0) or 0
        total = getattr(usage, "total_tokens", 0) or prompt + completion
        return TokenUsage(
            prompt_tokens=prompt, completion_tokens=completion, total_tokens=total
        )

    def _parse_response(self, response, output_model: type[T]) -> T:
        """Parse and validate the LLM response.

        Raises:
            LLMError: If parsing or validation fails.
        """
        message = response.choices[0].message
        content = getattr(message, "content", None)

        # Some providers return structured output as tool call arguments
        if content is None:
            tool_calls = getattr(message, "tool_calls", None) or []
            if tool_calls:
                arguments = getattr(getattr(tool_calls[0], "function", None), "arguments", None)
                if isinstance(arguments, str) and arguments.strip():
                    content = arguments

        if content is None:
            raise LLMError("LLM returned no content to parse.")

        content = extract_json(content)

        try:
            return output_model.model_validate_json(content)
        except ValidationError as e:
            raise LLMError(f"LLM response failed schema validation: {e}", e) from e
        except ValueError as e:
            raise LLMError(f"LLM response is not valid JSON: {e}", e) from e


def extract_json(content: str) -> str:
    """Strip markdown fences and leading prose around a JSON object."""
    content = content.strip()

    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1 :]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()

    if content.startswith("{"):
        return content

    start = content.find("{")
    if start == -1:
        return content
    depth = 0
    for idx in range(start, len(content)):
        if content[idx] == "{":
            depth += 1
        elif content[idx] == "}":
            depth -= 1
            if depth == 0:
                return content[start : idx + 1]
    return content
