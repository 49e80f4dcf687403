"""Ollama client that turns disassembly listings into JavaScript."""

import asyncio
import json
import logging
import random
import ssl
import time
from typing import Any, Dict, Tuple

import aiohttp
from aiohttp import ClientConnectorError, ClientError
import certifi

from smdecompile.decompile_error import APIError, NetworkError, ResponseError, ServiceError
from smdecompile.decompile_prompt import build_prompt, strip_markdown_fences
from smdecompile.decompile_response import DecompileError, DecompileResponse
from smdecompile.decompile_settings import DecompileSettings


# Longest backoff between two attempts, in seconds.
MAX_BACKOFF = 60

# Characters of an error body kept in logs and error details.
BODY_EXCERPT_CHARS = 200


def _excerpt(body: str) -> str:
    if len(body) > BODY_EXCERPT_CHARS:
        return body[:BODY_EXCERPT_CHARS] + "..."

    return body


class OllamaDecompiler:
    """
    Sends decompilation requests to an Ollama server.

    Each attempt opens its own aiohttp session, so nothing is shared between
    calls.  Network errors, timeouts and HTTP 500/502/503/504 are retried with
    jittered exponential backoff; any other failure ends the request at once.
    """

    def __init__(self, settings: DecompileSettings | None = None) -> None:
        """
        Initialize the client.

        Args:
            settings: Connection and retry settings (defaults to DecompileSettings())
        """
        self._settings = settings or DecompileSettings()
        self._logger = logging.getLogger(self.__class__.__name__)
        self._ssl_context = ssl.create_default_context(cafile=certifi.where())

    @property
    def settings(self) -> DecompileSettings:
        return self._settings

    def _build_request_data(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self._settings.model,
            "prompt": prompt,
            "stream": False,
            "options": {"num_ctx": self._settings.num_ctx}
        }

    async def _post(self, url: str, data: Dict[str, Any]) -> Tuple[int, bytes]:
        """
        Perform one POST request.

        Args:
            url: Request URL
            data: JSON request body

        Returns:
            Tuple of HTTP status and raw response body
        """
        timeout = aiohttp.ClientTimeout(
            total=self._settings.timeout,
            sock_connect=self._settings.connect_timeout,
            sock_read=self._settings.first_byte_timeout
        )
        connector = aiohttp.TCPConnector(ssl=self._ssl_context, keepalive_timeout=15)

        async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
            async with session.post(url, json=data, headers={"Accept": "application/json"}) as response:
                body = await response.read()
                return response.status, body

    def _parse_body(self, body: bytes) -> str:
        try:
            text = body.decode("utf-8")

        except UnicodeDecodeError as e:
            raise ResponseError(f"Response is not valid UTF-8: {e}") from e

        try:
            payload = json.loads(text)

        except json.JSONDecodeError as e:
            raise ResponseError(f"Response is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ResponseError("Response is not a JSON object")

        if isinstance(payload.get("response"), str):
            return payload["response"]

        if isinstance(payload.get("error"), str):
            raise ServiceError(payload["error"])

        raise ResponseError("Response has no 'response' text")

    async def _attempt(self, url: str, data: Dict[str, Any]) -> str:
        try:
            status, body = await self._post(url, data)

        except (ClientConnectorError, ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"{type(e).__name__}: {e}") from e

        self._logger.debug("Ollama replied with HTTP %d (%d bytes)", status, len(body))
        if status // 100 != 2:
            raise APIError(status, body.decode("utf-8", errors="replace"))

        return self._parse_body(body)

    async def generate(self, prompt: str) -> DecompileResponse:
        """
        Send a prompt and return the generated text.

        retries_exhausted is set on the returned error when a retryable failure
        ran out of attempts or out of wall-clock budget.

        Args:
            prompt: Complete prompt text

        Returns:
            DecompileResponse with either the raw generated text or an error
        """
        settings = self._settings
        url = settings.generate_url
        data = self._build_request_data(prompt)
        max_attempts = settings.retries + 1
        start_time = time.monotonic()

        self._logger.info(
            "Querying %s (timeout: %ds, retries: %d)", settings.model, settings.timeout, settings.retries
        )

        error = DecompileError(code="error", message="No attempt made")
        attempt = 0
        while attempt < max_attempts:
            try:
                content = await self._attempt(url, data)
                return DecompileResponse(content=content, attempts=attempt + 1)

            except NetworkError as e:
                self._logger.warning("Network error (attempt %d/%d): %s", attempt + 1, max_attempts, str(e))
                error = DecompileError(
                    code="network_error",
                    message=f"Network error: {str(e)}",
                    details={"attempt": attempt + 1}
                )

            except APIError as e:
                self._logger.warning("HTTP %d from Ollama; body: %s", e.status, _excerpt(e.body))
                error = DecompileError(
                    code=str(e.status),
                    message=f"API error {e.status}",
                    details={"status": e.status, "body": _excerpt(e.body), "attempt": attempt + 1}
                )
                if not e.retryable:
                    return DecompileResponse(content="", error=error, attempts=attempt + 1)

            except ServiceError as e:
                self._logger.error("Ollama error: %s", str(e))
                error = DecompileError(code="service_error", message=f"Ollama error: {str(e)}")
                return DecompileResponse(content="", error=error, attempts=attempt + 1)

            except ResponseError as e:
                self._logger.error("Failed to parse Ollama response: %s", str(e))
                error = DecompileError(code="invalid_response", message=str(e))
                return DecompileResponse(content="", error=error, attempts=attempt + 1)

            attempt += 1
            if attempt >= max_attempts:
                break

            delay = min(2 ** (attempt - 1), MAX_BACKOFF) * random.uniform(0.8, 1.2)
            elapsed = time.monotonic() - start_time
            if elapsed + delay > settings.max_wall_time:
                self._logger.warning(
                    "Abandoning retry: would exceed %d second wall-time cap", int(settings.max_wall_time)
                )
                error.retries_exhausted = True
                error.message += " (retry wall-time cap reached)"
                return DecompileResponse(content="", error=error, attempts=attempt)

            self._logger.warning(
                "Retrying in %.1fs... (attempt %d/%d, elapsed %ds)", delay, attempt + 1, max_attempts, int(elapsed)
            )
            await asyncio.sleep(delay)

        self._logger.error("All retry attempts failed")
        error.retries_exhausted = True
        return DecompileResponse(content="", error=error, attempts=max_attempts)

    def decompile(self, disassembly: str, function_name: str = "main") -> DecompileResponse:
        """
        Decompile a listing.

        Blocks the caller until the request finishes.  On success the content has
        its markdown code fences removed.

        Args:
            disassembly: Listing text
            function_name: Name of the root function

        Returns:
            DecompileResponse
        """
        self._settings.validate()
        prompt = build_prompt(disassembly, function_name, self._settings.num_ctx)
        self._logger.debug("Request prompt: %d chars", len(prompt))

        response = asyncio.run(self.generate(prompt))
        if response.error is None:
            response.content = strip_markdown_fences(response.content)

        return response
