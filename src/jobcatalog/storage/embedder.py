"""Ollama embeddings for catalog documents.

:class:`Embedder` is the only component that talks to Ollama.  The
posting store embeds each posting's header + description through it and
the technology catalog embeds ``"<name> (<category>)"``.

Failures surface as :class:`~jobcatalog.errors.ActionableError`:
VALIDATION for blank input, CONNECTION when Ollama is down at health
check, EMBEDDING for a missing model or exhausted retries.  Retryable
statuses (408, 429, 5xx) and dropped connections back off
exponentially.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

import ollama as ollama_sdk

from jobcatalog.errors import ActionableError, ErrorType
from jobcatalog.logging import logger

_T = TypeVar("_T")

# Status codes that warrant a retry (server overloaded / temporary failure)
_RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

# nomic-embed-text has an 8192-token window; posting descriptions full of
# bullets and accented text tokenize close to 1 char/token.
_MAX_EMBED_CHARS = 8_000

# Keep the head (title, company, stack) and the tail (salary, location)
# of an over-long description.  60/40 split.
_HEAD_RATIO = 0.6
_TRUNCATION_MARKER = "\n[…]\n"


class Embedder:
    """Wraps Ollama embedding calls with backoff and error handling.

    Usage::

        embedder = Embedder(
            base_url="http://localhost:11434",
            embed_model="nomic-embed-text",
        )
        await embedder.health_check()              # fail fast if Ollama is down
        vec = await embedder.embed("some text")     # → list[float]
    """

    def __init__(
        self,
        base_url: str,
        embed_model: str,
        *,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        self.base_url = base_url
        self.embed_model = embed_model
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._client = ollama_sdk.AsyncClient(host=base_url)

    # -- Public API ----------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for *text*.

        Strips whitespace before embedding. Raises VALIDATION for empty
        input; retries transient Ollama errors with exponential backoff.
        Text longer than ``_MAX_EMBED_CHARS`` is truncated head + tail.
        """
        cleaned = text.strip()
        if not cleaned:
            raise ActionableError(
                error="Cannot embed empty text",
                error_type=ErrorType.VALIDATION,
                service="Ollama",
                suggestion="Provide non-empty text to embed",
            )

        if len(cleaned) > _MAX_EMBED_CHARS:
            logger.debug(
                "Truncating embed input from %d to %d chars (head+tail)",
                len(cleaned),
                _MAX_EMBED_CHARS,
            )
            budget = _MAX_EMBED_CHARS - len(_TRUNCATION_MARKER)
            head_len = int(budget * _HEAD_RATIO)
            tail_len = budget - head_len
            cleaned = cleaned[:head_len] + _TRUNCATION_MARKER + cleaned[-tail_len:]

        async def _call() -> list[float]:
            response = await self._client.embed(model=self.embed_model, input=cleaned)
            return list(response.embeddings[0])

        return await self._with_retry(_call, operation="embed")

    async def health_check(self) -> None:
        """Verify Ollama is reachable and the embedding model is available.

        Raises :class:`~jobcatalog.errors.ActionableError`:
          - CONNECTION if Ollama is unreachable
          - EMBEDDING if the model is not pulled

        Must be called **before** any store is written to.
        """
        try:
            response = await self._client.list()
        except (ConnectionError, OSError) as exc:
            raise ActionableError.connection(
                service="Ollama",
                url=self.base_url,
                raw_error=str(exc),
            ) from None

        available = {m.model for m in response.models if m.model}
        # Ollama model names may carry a :latest suffix
        available_all = available | {name.split(":")[0] for name in available}

        model_base = self.embed_model.split(":")[0]
        if self.embed_model not in available_all and model_base not in available_all:
            raise ActionableError.embedding(
                model=self.embed_model,
                raw_error=f"Model '{self.embed_model}' is not pulled in Ollama",
                suggestion=f"Run: ollama pull {self.embed_model}",
            )

        logger.info("Ollama health check passed — %s available", self.embed_model)

    # -- Retry logic ---------------------------------------------------------

    async def _with_retry(
        self,
        fn: Callable[[], Awaitable[_T]],
        *,
        operation: str,
    ) -> _T:
        """Run *fn* up to ``max_retries`` times.

        Retryable statuses and dropped connections back off exponentially
        between attempts; any other Ollama status is an EMBEDDING error
        at once, as is running out of attempts.
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                return await fn()
            except ollama_sdk.ResponseError as exc:
                if exc.status_code not in _RETRYABLE_STATUS_CODES:
                    raise ActionableError.embedding(
                        model=self.embed_model,
                        raw_error=str(exc),
                    ) from None
                last_error = exc
                cause = f"status {exc.status_code}"
            except (ConnectionError, OSError) as exc:
                last_error = exc
                cause = "connection lost"

            if attempt == self.max_retries:
                break
            delay = self.base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Ollama %s attempt %d/%d failed (%s), retrying in %.1fs: %s",
                operation,
                attempt,
                self.max_retries,
                cause,
                delay,
                last_error,
            )
            await asyncio.sleep(delay)

        raise ActionableError.embedding(
            model=self.embed_model,
            raw_error=f"Failed after {self.max_retries} attempts: {last_error}",
            suggestion="Ollama may be overloaded; lower --batch-size and re-run",
        )
