"""
Chat Service HTTP Client
========================
Shared aiohttp session for the identity and session gateways.

Every failure mode (connection error, timeout, non-2xx status, body that is
not a JSON object) is raised as ServiceError carrying the endpoint name, so
gateways and the orchestrator handle exactly one exception type.
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp

from ...core.exceptions import ServiceError
from ...core.logger import StructuredLogger, get_logger
from ..config.settings import ApiSettings, EndpointSettings, HttpMethod


class ChatServiceClient:
    """
    HTTP client for the chat service REST endpoints.

    The aiohttp session is created lazily on first use (it must be created
    inside a running event loop) and closed by stop(). An externally owned
    session can be injected; it is then left open on stop().
    """

    def __init__(
        self,
        settings: ApiSettings,
        logger: Optional[StructuredLogger] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.settings = settings
        self.logger = logger or get_logger(__name__)
        self.base_url = settings.base_url
        self.session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

        # Statistics
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.start_time = time.time()

    async def start(self) -> None:
        """Initialize HTTP session"""
        if not self.session:
            timeout = aiohttp.ClientTimeout(
                total=self.settings.timeout_seconds,
                connect=self.settings.connect_timeout_seconds
            )
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": self.settings.user_agent, "Accept": "application/json"}
            )
            self._owns_session = True
            self.logger.info("chat_http_client.started", {"base_url": self.base_url})

    async def stop(self) -> None:
        """Close HTTP session"""
        if self.session and self._owns_session:
            await self.session.close()
            self.logger.info("chat_http_client.stopped", {
                "total_requests": self.total_requests,
                "failed_requests": self.failed_requests
            })
        self.session = None

    async def __aenter__(self) -> "ChatServiceClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def request(self, name: str, endpoint: EndpointSettings, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Call an endpoint and return its decoded JSON object body.

        GET endpoints send params as the query string, POST endpoints as a
        JSON body.

        Args:
            name: Logical endpoint name used in logs and errors
            endpoint: Endpoint configuration
            params: Request fields, already mapped to wire names

        Returns:
            Response body as a dict

        Raises:
            ServiceError: On any transport, status or decoding failure
        """
        if not self.session:
            await self.start()

        url = f"{self.base_url}{endpoint.path}"
        self.total_requests += 1
        start_time = time.time()

        if endpoint.method == HttpMethod.GET:
            request_kwargs = {"params": {k: str(v) for k, v in params.items()}}
        else:
            request_kwargs = {"json": params}

        try:
            async with self.session.request(endpoint.method.value, url, **request_kwargs) as response:
                if response.status < 200 or response.status >= 300:
                    detail = (await response.text())[:200]
                    self._record_failure()
                    self.logger.warning("chat_http_client.http_error", {
                        "endpoint": name,
                        "status": response.status,
                        "detail": detail
                    })
                    raise ServiceError(name, detail or response.reason or "unexpected status", status=response.status)

                try:
                    body = await response.json(content_type=None)
                except ValueError as e:
                    self._record_failure()
                    raise ServiceError(name, f"response is not valid JSON: {e}", status=response.status) from e

        except ServiceError:
            raise
        except asyncio.TimeoutError as e:
            self._record_failure()
            self.logger.error("chat_http_client.timeout", {
                "endpoint": name,
                "timeout_seconds": self.settings.timeout_seconds
            })
            raise ServiceError(name, f"timed out after {self.settings.timeout_seconds}s") from e
        except aiohttp.ClientError as e:
            self._record_failure()
            self.logger.error("chat_http_client.request_error", {
                "endpoint": name,
                "error": str(e),
                "error_type": type(e).__name__
            })
            raise ServiceError(name, str(e) or type(e).__name__) from e

        if not isinstance(body, dict):
            self._record_failure()
            raise ServiceError(name, "response body is not a JSON object")

        self.successful_requests += 1
        self.logger.debug("chat_http_client.request_completed", {
            "endpoint": name,
            "method": endpoint.method.value,
            "elapsed_ms": round((time.time() - start_time) * 1000, 2)
        })
        return body

    def _record_failure(self) -> None:
        self.failed_requests += 1

    def get_statistics(self) -> Dict[str, Any]:
        """Request counters for diagnostics"""
        return {
            "base_url": self.base_url,
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "uptime_seconds": round(time.time() - self.start_time, 1)
        }
