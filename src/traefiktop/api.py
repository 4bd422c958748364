"""
Traefik admin API gateway.

This module wraps the two read-only endpoints traefiktop needs:
  - GET /api/http/routers
  - GET /api/http/services

Every public fetch returns a FetchResult instead of raising: network errors,
non-2xx responses and malformed JSON are caught, logged and turned into a
failed result carrying a FetchFailure. Callers never see an exception cross
this boundary.

Key Classes:
  - TraefikClient: async context manager around httpx.AsyncClient
  - TraefikGateway: fetch_routers/fetch_services with shared TLS/timeout
  - FetchResult: tagged success/failure value

Credentials:
  - "user:password" is sent as an HTTP basic auth header
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

import httpx

from . import __version__
from .model import Router, Service

logger = logging.getLogger(__name__)

T = TypeVar("T")

ROUTERS_ENDPOINT = "/api/http/routers"
SERVICES_ENDPOINT = "/api/http/services"


class FetchFailure(Exception):
    """A router or service fetch failed (network, HTTP status or payload)."""

    def __init__(self, message: str, endpoint: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[FetchFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: FetchFailure) -> "FetchResult[T]":
        return cls(error=error)


def api_safe(endpoint: str) -> Callable:
    """
    Decorator for gateway coroutines that ensures safe error handling.

    Wraps the return value in FetchResult.success, and converts any exception
    into FetchResult.failure after logging it.

    Args:
        endpoint: API path used in log lines and on the FetchFailure
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> FetchResult:
            try:
                return FetchResult.success(await func(*args, **kwargs))
            except FetchFailure as e:
                logger.error(f"Traefik API call failed in {func.__name__}: {e}")
                return FetchResult.failure(e)
            except httpx.HTTPStatusError as e:
                logger.error(f"Traefik API call failed in {func.__name__}: {e}")
                return FetchResult.failure(FetchFailure(
                    f"HTTP {e.response.status_code} from {endpoint}",
                    endpoint=endpoint,
                    status_code=e.response.status_code,
                ))
            except Exception as e:
                logger.error(f"Traefik API call failed in {func.__name__}: {e}", exc_info=True)
                return FetchResult.failure(FetchFailure(str(e) or type(e).__name__, endpoint=endpoint))
        return wrapper
    return decorator


def parse_credential(credential: Optional[str]) -> Optional[Tuple[str, str]]:
    if not credential:
        return None
    user, _, password = credential.partition(":")
    return user, password


class TraefikClient:
    """
    Async client for the Traefik admin API.

    Usage:
        async with TraefikClient("http://localhost:8080") as client:
            routers = await client.get_routers()
    """

    def __init__(
        self,
        base_url: str,
        credential: Optional[str] = None,
        insecure: bool = False,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.credential = credential
        self.insecure = insecure
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "TraefikClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=parse_credential(self.credential),
            headers={"User-Agent": f"traefiktop/{__version__}"},
            timeout=self.timeout,
            verify=not self.insecure,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, *args) -> None:
        if self._client:
            await self._client.aclose()

    async def _get_list(self, endpoint: str) -> List[Any]:
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        response = await self._client.get(endpoint)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, list):
            raise FetchFailure(f"Unexpected payload from {endpoint}: expected a list", endpoint=endpoint)
        return data

    async def get_routers(self) -> List[Router]:
        return [Router.from_api(r) for r in await self._get_list(ROUTERS_ENDPOINT)]

    async def get_services(self) -> List[Service]:
        return [Service.from_api(s) for s in await self._get_list(SERVICES_ENDPOINT)]


class TraefikGateway:
    """Remote fetch gateway: one coroutine per entity kind, sharing TLS and timeout settings."""

    def __init__(
        self,
        insecure: bool = False,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.insecure = insecure
        self.timeout = timeout
        self.transport = transport

    def _client(self, base_url: str, credential: Optional[str]) -> TraefikClient:
        return TraefikClient(base_url, credential, self.insecure, self.timeout, self.transport)

    @api_safe(ROUTERS_ENDPOINT)
    async def fetch_routers(self, base_url: str, credential: Optional[str] = None) -> List[Router]:
        async with self._client(base_url, credential) as client:
            return await client.get_routers()

    @api_safe(SERVICES_ENDPOINT)
    async def fetch_services(self, base_url: str, credential: Optional[str] = None) -> List[Service]:
        async with self._client(base_url, credential) as client:
            return await client.get_services()

    async def fetch_all(
        self, base_url: str, credential: Optional[str] = None
    ) -> Tuple[FetchResult[List[Router]], FetchResult[List[Service]]]:
        return await asyncio.gather(
            self.fetch_routers(base_url, credential),
            self.fetch_services(base_url, credential),
        )


default_gateway = TraefikGateway()


async def fetch_routers(base_url: str, credential: Optional[str] = None) -> FetchResult[List[Router]]:
    return await default_gateway.fetch_routers(base_url, credential)


async def fetch_services(base_url: str, credential: Optional[str] = None) -> FetchResult[List[Service]]:
    return await default_gateway.fetch_services(base_url, credential)
