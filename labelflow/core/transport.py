from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from labelflow.core.schema import ApiConfig, ApiResult
from labelflow.util import logging


class Transport(Protocol):
    async def call(
        self,
        method_name: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> ApiResult:
        ...


@dataclass(frozen=True)
class Endpoint:
    method: str
    path: str
    # Params that end up in the query string, the rest fill the path template
    query: tuple[tuple[str, str], ...] = ()


ENDPOINTS: dict[str, Endpoint] = {
    "project": Endpoint("GET", "/project"),
    "actions": Endpoint("GET", "/actions"),
    "columns": Endpoint("GET", "/columns"),
    "views": Endpoint("GET", "/views"),
    "task": Endpoint("GET", "/tasks/{taskID}"),
    "tasks": Endpoint("GET", "/tasks", query=(("tabID", "view"),)),
    "annotations": Endpoint("GET", "/annotations", query=(("tabID", "view"),)),
    "invokeAction": Endpoint("POST", "/actions", query=(("id", "id"), ("tabID", "tabID"))),
}


class HttpTransport:
    """
    Maps named remote operations onto REST endpoints.

    HTTP error statuses are folded into the result envelope. Connection
    level failures (httpx.TransportError) are not, they propagate to the caller.
    """

    def __init__(
        self,
        config: ApiConfig,
        client: httpx.AsyncClient | None = None,
        endpoints: dict[str, Endpoint] | None = None,
    ):
        self._config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url, timeout=config.timeout
        )
        self._endpoints = endpoints or ENDPOINTS

    async def call(
        self,
        method_name: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> ApiResult:
        endpoint = self._endpoints.get(method_name)
        if endpoint is None:
            raise ValueError(f"Unknown remote operation: {method_name!r}")

        params = dict(params or {})
        query = {
            query_key: params.pop(param_key)
            for param_key, query_key in endpoint.query
            if params.get(param_key) is not None
        }
        path = endpoint.path.format(**params)

        # Callers pass {'body': payload} the same way for every operation
        json_body = (body or {}).get('body')

        try:
            response = await self._client.request(
                endpoint.method, path, params=query, json=json_body
            )
        except httpx.TransportError as e:
            logging.error(f"Transport fault calling {method_name!r}: {e}")
            raise

        return _to_result(response)

    async def aclose(self):
        await self._client.aclose()


def _to_result(response: httpx.Response) -> ApiResult:
    try:
        payload = response.json() if response.content else None
    except ValueError:
        payload = response.text

    if response.is_error:
        return ApiResult(
            error=response.reason_phrase or f"HTTP {response.status_code}",
            status=response.status_code,
            response=payload,
        )

    return ApiResult(status=response.status_code, response=payload)
