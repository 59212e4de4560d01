"""
Ollama Streaming Client for StudyScribe
Talks to a local Ollama server over its REST API.

- generate(): one streamed POST /api/generate per call, yielding text
  increments as newline-delimited JSON fragments arrive
- check_health() / list_models(): GET /api/tags

Failure policy:
- Connection refused / network failures are retried immediately, up to
  MAX_TRANSPORT_RETRIES extra attempts
- HTTP error statuses and timeouts are raised at once
- A transport failure after streaming has started raises
  StreamInterruptedError; callers must discard the partial text
"""

import json
import time
from dataclasses import dataclass, field

import requests

from studyscribe.config import (
    GENERATION_TIMEOUT_SECONDS,
    HEALTH_TIMEOUT_SECONDS,
    MAX_PROMPT_LENGTH,
    MAX_TRANSPORT_RETRIES,
    OLLAMA_API_BASE,
)
from studyscribe.errors import (
    FatalTransportError,
    GenerationTimeoutError,
    StreamInterruptedError,
    TransientTransportError,
)
from studyscribe.logging_config import debug_log, error, info, warning


@dataclass(frozen=True)
class GenerationRequest:
    """One generation call: model, prompt and the server endpoint."""
    model: str
    prompt: str
    endpoint: str = OLLAMA_API_BASE


@dataclass
class OllamaModel:
    """A model installed on the Ollama server."""
    name: str
    size: int = 0
    modified_at: str = ""


@dataclass
class HealthStatus:
    """Result of a connectivity check."""
    connected: bool
    models: list[str] = field(default_factory=list)


class GenerationStream:
    """
    Lazy, pull-based sequence of text increments from one generation call.

    Iterate it to receive increments in arrival order. Iteration ends when
    a fragment reports done=true or the server closes the stream. close()
    releases the HTTP response and ends iteration early; it is also the
    only way to cancel an in-flight call.

    Example:
        with client.generate(request) as stream:
            for text in stream:
                ...
    """

    def __init__(self, response: requests.Response, deadline: float, timeout: float):
        self._response = response
        self._deadline = deadline
        self._timeout = timeout
        self._closed = False
        self._increments = self._read_increments()

    @property
    def closed(self) -> bool:
        """True once the stream is exhausted, failed or was closed."""
        return self._closed

    def __iter__(self):
        return self

    def __next__(self) -> str:
        if self._closed:
            raise StopIteration
        try:
            return next(self._increments)
        except BaseException:
            self.close()
            raise

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Abort the call and release the underlying connection."""
        if self._closed:
            return
        self._closed = True
        self._increments.close()
        self._response.close()

    def _check_deadline(self) -> None:
        if time.monotonic() > self._deadline:
            raise GenerationTimeoutError(
                f"Generation timeout after {self._timeout} seconds"
            )

    def _read_increments(self):
        """Parse newline-delimited JSON fragments into text increments."""
        received = 0
        try:
            for raw_line in self._response.iter_lines():
                self._check_deadline()
                if not raw_line:
                    continue

                if isinstance(raw_line, bytes):
                    line = raw_line.decode('utf-8', errors='replace').strip()
                else:
                    line = raw_line.strip()
                if not line:
                    continue

                try:
                    fragment = json.loads(line)
                except json.JSONDecodeError:
                    warning(f"[OLLAMA] Failed to parse stream line: {line[:200]}")
                    continue

                if not isinstance(fragment, dict) or not isinstance(fragment.get('response', ''), str):
                    warning(f"[OLLAMA] Skipping malformed stream fragment: {line[:200]}")
                    continue

                received += 1
                yield fragment.get('response', '')

                if fragment.get('done'):
                    debug_log(f"[OLLAMA] Stream complete after {received} fragments")
                    return

            debug_log(f"[OLLAMA] Server closed stream after {received} fragments")

        except requests.exceptions.RequestException as e:
            if time.monotonic() > self._deadline:
                raise GenerationTimeoutError(
                    f"Generation timeout after {self._timeout} seconds"
                ) from e
            error(f"[OLLAMA] Stream interrupted after {received} fragments: {e}")
            raise StreamInterruptedError() from e


class OllamaClient:
    """
    Streaming client for the Ollama REST API.

    Holds no state between calls beyond its configuration, so a single
    instance can serve concurrent jobs.
    """

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Default Ollama URL for health checks and model listing
            timeout: Hard deadline per generation call in seconds
            max_retries: Extra attempts after a transient connection failure
        """
        self.endpoint = endpoint or OLLAMA_API_BASE
        self.timeout = GENERATION_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = MAX_TRANSPORT_RETRIES if max_retries is None else max_retries

    def generate(self, request: GenerationRequest) -> GenerationStream:
        """
        Start a streamed generation.

        The prompt is truncated to MAX_PROMPT_LENGTH characters before it is
        sent. Connection failures are retried; everything else is raised.

        Args:
            request: Model, prompt and endpoint for this call

        Returns:
            GenerationStream yielding text increments

        Raises:
            TransientTransportError: Server unreachable after every retry
            FatalTransportError: Server answered with an HTTP error status
            GenerationTimeoutError: The call exceeded its deadline
        """
        prompt = request.prompt
        if len(prompt) > MAX_PROMPT_LENGTH:
            debug_log(
                f"[OLLAMA] Truncating prompt from {len(prompt)} to {MAX_PROMPT_LENGTH} chars"
            )
            prompt = prompt[:MAX_PROMPT_LENGTH]

        endpoint = (request.endpoint or self.endpoint).rstrip('/')
        payload = {"model": request.model, "prompt": prompt, "stream": True}

        debug_log(f"[OLLAMA] Generate: model={request.model}, prompt={len(prompt)} chars")

        for attempt in range(self.max_retries + 1):
            deadline = time.monotonic() + self.timeout
            try:
                response = requests.post(
                    f"{endpoint}/api/generate",
                    json=payload,
                    stream=True,
                    timeout=self.timeout,
                )
            except requests.exceptions.Timeout as e:
                raise GenerationTimeoutError(
                    f"Generation timeout after {self.timeout} seconds"
                ) from e
            except requests.exceptions.ConnectionError as e:
                if attempt < self.max_retries:
                    warning(
                        f"[OLLAMA] Transient error (attempt {attempt + 1}/{self.max_retries + 1}), "
                        f"retrying: {e}"
                    )
                    continue
                raise TransientTransportError(
                    f"Cannot connect to Ollama at {endpoint}. Is Ollama running? Start with: ollama serve"
                ) from e

            if response.status_code >= 400:
                message = f"Ollama API returned {response.status_code}: {response.reason}"
                response.close()
                error(f"[OLLAMA] {message}")
                raise FatalTransportError(message, status_code=response.status_code)

            return GenerationStream(response, deadline, self.timeout)

        # Unreachable: the loop either returns or raises
        raise TransientTransportError(f"No response received from Ollama at {endpoint}")

    def check_health(self, endpoint: str | None = None) -> HealthStatus:
        """
        Check if Ollama is running and list available model names.

        Never raises; an unreachable server reports connected=False.
        """
        url = (endpoint or self.endpoint).rstrip('/')
        try:
            response = requests.get(f"{url}/api/tags", timeout=HEALTH_TIMEOUT_SECONDS)
        except requests.exceptions.RequestException as e:
            warning(f"[OLLAMA] Health check failed: {e}")
            return HealthStatus(connected=False)

        if response.status_code != 200:
            warning(f"[OLLAMA] Health check returned status {response.status_code}")
            return HealthStatus(connected=False)

        try:
            body = response.json()
            if not isinstance(body, dict):
                raise TypeError(f"expected a JSON object, got {type(body).__name__}")
            names = [m['name'] for m in body.get('models', [])]
        except (ValueError, KeyError, TypeError) as e:
            warning(f"[OLLAMA] Health check returned an unreadable body: {e}")
            return HealthStatus(connected=False)

        info(f"[OLLAMA] Health check OK, {len(names)} model(s) available")
        return HealthStatus(connected=True, models=names)

    def list_models(self, endpoint: str | None = None) -> list[OllamaModel]:
        """
        List all models installed on the server.

        Raises:
            FatalTransportError: The server answered with an error status
            requests.exceptions.RequestException: The server is unreachable
        """
        url = (endpoint or self.endpoint).rstrip('/')
        response = requests.get(f"{url}/api/tags", timeout=HEALTH_TIMEOUT_SECONDS)
        if response.status_code != 200:
            raise FatalTransportError(
                f"Ollama API returned status {response.status_code}",
                status_code=response.status_code,
            )

        models = [
            OllamaModel(
                name=m['name'],
                size=m.get('size', 0),
                modified_at=m.get('modified_at', ''),
            )
            for m in response.json().get('models', [])
        ]
        debug_log(f"[OLLAMA] Found {len(models)} models: {[m.name for m in models]}")
        return models
