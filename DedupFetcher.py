import logging
from typing import Callable, Optional

import httpx

from InflightRegistry import InflightRegistry

logger = logging.getLogger(__name__)

# on_error(request, error), called once per failed upstream execution
ErrorHook = Callable[[httpx.Request, httpx.HTTPError], None]


class DedupFetcher:
    """httpx client wrapper that shares concurrent identical GETs.

    The key is the request as httpx would send it: the final URL (base URL,
    path, ``params`` merged into the query) plus every header. Query strings
    are not reordered; ``/a?x=1&y=2`` and ``/a?y=2&x=1`` are different
    requests. Everything that is not a GET is sent as-is.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry: Optional[InflightRegistry] = None,
        on_error: Optional[ErrorHook] = None,
    ):
        self.client = client
        self.registry = registry if registry is not None else InflightRegistry()
        self.on_error = on_error

    async def fetch(self, url: str, method: Optional[str] = None, **kwargs) -> httpx.Response:
        method = (method or "GET").upper()
        if method != "GET":
            logger.debug("[PROXY] %s %s (not deduplicated)", method, url)
            return await self.client.request(method, url, **kwargs)

        request = self.client.build_request("GET", url, **kwargs)
        return await self.registry.get_or_execute(self.request_key(request), self._send, request)

    @staticmethod
    def request_key(request: httpx.Request) -> str:
        headers = sorted((name.lower(), value) for name, value in request.headers.multi_items())
        return f"{request.method} {request.url} {headers!r}"

    async def _send(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self.client.send(request)
        except httpx.HTTPError as e:
            if self.on_error is not None:
                self.on_error(request, e)
            raise

    def in_flight_count(self) -> int:
        return self.registry.size()
