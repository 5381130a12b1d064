"""
Ollama API client used by the ollamactl commands
"""
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import structlog

from .models import CreateRequest, ListedModel, ModelDescription

logger = structlog.get_logger(__name__)


class OllamaError(Exception):
    """Base exception for Ollama API errors"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(OllamaError):
    """The server refused the request for lack of permission"""
    pass


@dataclass
class ProgressResponse:
    """One line of a streamed pull/push/create response"""
    status: str = ""
    digest: str = ""
    total: int = 0
    completed: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressResponse":
        return cls(
            status=data.get("status", ""),
            digest=data.get("digest", ""),
            total=int(data.get("total") or 0),
            completed=int(data.get("completed") or 0),
        )


def _error_message(response: httpx.Response) -> str:
    text = response.text.strip()
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return text or response.reason_phrase or f"HTTP {response.status_code}"


def _raise_for_status(response: httpx.Response):
    if response.status_code < 400:
        return
    message = _error_message(response)
    if response.status_code == 401:
        raise UnauthorizedError(message, response.status_code)
    raise OllamaError(message, response.status_code)


class OllamaClient:
    """Client for Ollama API"""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:11434",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        # No timeout by default: model operations can take minutes
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Ollama request failed", method=method, path=path, error=str(e))
            raise OllamaError(f"could not connect to ollama server at {self.base_url}: {e}") from e
        logger.debug("Ollama response", method=method, path=path, status=response.status_code)
        _raise_for_status(response)
        return response

    async def _stream(self, path: str, body: Dict[str, Any]) -> AsyncIterator[ProgressResponse]:
        try:
            async with self.client.stream("POST", path, json=body) as response:
                if response.status_code >= 400:
                    await response.aread()
                    _raise_for_status(response)

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed progress line", line=line)
                        continue
                    if data.get("error"):
                        raise OllamaError(str(data["error"]))
                    yield ProgressResponse.from_dict(data)
        except httpx.HTTPError as e:
            logger.error("Ollama stream failed", path=path, error=str(e))
            raise OllamaError(f"could not connect to ollama server at {self.base_url}: {e}") from e

    async def show(self, model: str, verbose: bool = False) -> ModelDescription:
        """Describe a model"""
        response = await self._request("POST", "/api/show", json={"model": model, "verbose": verbose})
        return ModelDescription.from_dict(response.json())

    async def list_models(self) -> List[ListedModel]:
        """List locally available models"""
        response = await self._request("GET", "/api/tags")
        return [ListedModel.from_dict(m) for m in response.json().get("models") or []]

    async def unload_model(self, model: str):
        """Ask the server to unload a running model right away"""
        await self._request("POST", "/api/generate", json={"model": model, "keep_alive": 0})

    async def delete_model(self, model: str):
        """Delete a model"""
        await self._request("DELETE", "/api/delete", json={"model": model})

    def push_model(self, model: str, insecure: bool = False) -> AsyncIterator[ProgressResponse]:
        """Push a model to its registry, yielding progress"""
        return self._stream("/api/push", {"model": model, "insecure": insecure, "stream": True})

    def create_model(self, request: CreateRequest) -> AsyncIterator[ProgressResponse]:
        """Create a model, yielding progress"""
        return self._stream("/api/create", request.to_dict())
