"""LLM Client for Groq chat completions."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Sequence, Union
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging

from models.conversation import ChatMessage
from config import GROQ_API_KEY, COMPLETION_MODEL, COMPLETION_TEMPERATURE, COMPLETION_MAX_TOKENS

logger = logging.getLogger(__name__)

MessageLike = Union[ChatMessage, Dict[str, str]]


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for the completion provider (Groq, OpenAI-compatible chat API)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = COMPLETION_MODEL,
        timeout: float = 60.0,
        max_retries: int = 2
    ):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            model: Default model for requests that do not name one
            timeout: Request timeout in seconds
            max_retries: Retries performed by the SDK on connection errors, 429 and 5xx
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.model = model
        self.client = Groq(api_key=self.api_key, timeout=timeout, max_retries=max_retries)
        logger.info("LLMClient initialized successfully")

    def complete(
        self,
        messages: Sequence[MessageLike],
        model: Optional[str] = None,
        temperature: float = COMPLETION_TEMPERATURE,
        max_tokens: int = COMPLETION_MAX_TOKENS
    ) -> LLMResponse:
        """
        Send role-tagged messages and return the single completion.

        Args:
            messages: Ordered ChatMessage objects or {"role", "content"} dicts
            model: Model name (defaults to the client's model)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        model = model or self.model
        payload = [m.to_dict() if isinstance(m, ChatMessage) else dict(m) for m in messages]
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = self.client.chat.completions.create(
                model=model,
                messages=payload,
                max_tokens=max_tokens,
                temperature=temperature
            )

            latency_ms = int((time.time() - start_time) * 1000)

            text = response.choices[0].message.content or ""

            usage = response.usage
            tokens_input = usage.prompt_tokens if usage else 0
            tokens_output = usage.completion_tokens if usage else 0

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except RateLimitError as e:
            self._fail(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e, retry_after=60
            )
        except AuthenticationError as e:
            self._fail("AUTHENTICATION_ERROR", "Authentication failed. Please check your API key.", model, start_time, e)
        except APITimeoutError as e:
            self._fail("TIMEOUT_ERROR", "Request timed out. Please try again.", model, start_time, e)
        except APIError as e:
            self._fail("API_ERROR", f"Groq API error: {str(e)}", model, start_time, e)
        except Exception as e:
            self._fail(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                model, start_time, e, error_type=type(e).__name__
            )

    def generate(self, prompt: str, model: Optional[str] = None, max_tokens: int = COMPLETION_MAX_TOKENS,
                 temperature: float = COMPLETION_TEMPERATURE) -> LLMResponse:
        """Single user-message completion."""
        return self.complete(
            [ChatMessage(role="user", content=prompt)],
            model=model,
            temperature=temperature,
            max_tokens=max_tokens
        )

    @staticmethod
    def _fail(code: str, message: str, model: str, start_time: float, original: Exception, **extra_details) -> None:
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": model,
                "latency_ms": latency_ms,
                "original_error": str(original),
                **extra_details
            }
        )
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={original}",
            exc_info=True,
            extra={"error_code": error.code, "error_details": error.details}
        )
        raise LLMClientError(error) from original


def to_messages(history: Sequence[MessageLike]) -> List[ChatMessage]:
    """Normalize dict history entries into ChatMessage objects."""
    return [
        m if isinstance(m, ChatMessage) else ChatMessage(role=m["role"], content=m["content"])
        for m in history
    ]
