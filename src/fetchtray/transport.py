"""
Transports that execute a resolved request, and the step that turns their
``httpx.Response`` into a ``TrayResponse``.

``HttpxTransport`` talks to the network. ``MockTransport`` answers every call
with a canned ``TrayRequestMock`` while still building the real
``httpx.Request``, so URL, header and body encoding are exercised in tests.
"""

from __future__ import annotations

import json
import typing as t
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
import structlog
from pydantic import BaseModel, Field

from fetchtray.config import FetchTrayDebugLevel, resolve_config
from fetchtray.exceptions import TrayRequestError, error_from_response
from fetchtray.logging import mask_headers

if t.TYPE_CHECKING:
    from fetchtray.request import TrayRequest

log = structlog.get_logger(__name__)

ResultT = t.TypeVar("ResultT")


class TrayRequestMock(BaseModel):
    """
    Canned response returned instead of performing network I/O.

    Parameters
    ----------
    result : str
        Raw response body.
    status_code : int
        Response status code.
    headers : dict[str, str]
        Response headers.
    """

    result: str = ""
    status_code: int = 200
    headers: dict[str, str] = Field(default_factory=dict)


@dataclass(frozen=True)
class TrayResponse(t.Generic[ResultT]):
    """
    Outcome of one executed request.

    Parameters
    ----------
    data : ResultT | None
        Parsed result, ``None`` on error.
    data_raw : typing.Any
        Decoded response body before parsing.
    error : TrayRequestError | None
        Response-level error for non-2xx responses.
    status_code : int | None
        Response status code.
    """

    data: ResultT | None = None
    data_raw: t.Any = None
    error: TrayRequestError | None = None
    status_code: int | None = None


class TrayTransport(ABC):
    """
    Network boundary used by the controller.
    """

    @abstractmethod
    async def send(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> httpx.Response:
        """
        Send one request and return the completed response.

        Parameters
        ----------
        method : str
            HTTP method.
        url : str
            Fully resolved URL.
        headers : dict[str, str]
            Request headers.
        body : bytes | None
            Encoded request body.

        Returns
        -------
        httpx.Response
            Response with its body read.
        """

    async def aclose(self) -> None:
        """
        Release resources owned by the transport.
        """
        return None


class HttpxTransport(TrayTransport):
    """
    Transport backed by ``httpx.AsyncClient``.

    Parameters
    ----------
    client : httpx.AsyncClient | None, optional
        Client to send requests with. It stays owned by the caller. When
        omitted, a short-lived client is created per request.
    timeout_seconds : float | None, optional
        Timeout of the clients created by the transport. Defaults to
        ``FETCHTRAY_TIMEOUT_SECONDS``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._client = client
        timeout = timeout_seconds if timeout_seconds is not None else resolve_config().timeout_seconds
        self._client_factory: t.Callable[[], httpx.AsyncClient] = lambda: httpx.AsyncClient(
            timeout=timeout, follow_redirects=True
        )

    async def send(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, headers=headers, content=body)
        async with self._client_factory() as client:
            return await client.request(method, url, headers=headers, content=body)


class MockTransport(TrayTransport):
    """
    Transport answering every request with a ``TrayRequestMock``.

    Parameters
    ----------
    mock : TrayRequestMock
        Response to return.

    Attributes
    ----------
    calls : list[httpx.Request]
        Requests received so far, in order.
    """

    def __init__(self, mock: TrayRequestMock) -> None:
        self.mock = mock
        self.calls: list[httpx.Request] = []
        self._client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        log.debug(
            event="Mock transport answered request",
            method=request.method,
            url=str(request.url),
            status_code=self.mock.status_code,
        )
        return httpx.Response(
            status_code=self.mock.status_code,
            headers=self.mock.headers,
            content=self.mock.result.encode("utf-8"),
        )

    async def send(
        self,
        *,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None,
    ) -> httpx.Response:
        return await self._client.request(method, url, headers=headers, content=body)

    async def aclose(self) -> None:
        await self._client.aclose()


def build_transport(
    *,
    client: httpx.AsyncClient | None = None,
    mock: TrayRequestMock | None = None,
) -> TrayTransport:
    """
    Pick the transport for a request: the mock when one is given.

    Parameters
    ----------
    client : httpx.AsyncClient | None, optional
        Custom client for the real transport.
    mock : TrayRequestMock | None, optional
        Canned response. Takes precedence over ``client``.

    Returns
    -------
    TrayTransport
        Selected transport.
    """
    if mock is not None:
        return MockTransport(mock)
    return HttpxTransport(client)


def _decode_body(response: httpx.Response) -> t.Any:
    if not response.content:
        return ""
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


async def execute_request(
    request: TrayRequest,
    *,
    transport: TrayTransport,
    debug_level: FetchTrayDebugLevel = FetchTrayDebugLevel.NONE,
) -> TrayResponse[t.Any]:
    """
    Resolve, send and parse one request.

    Parameters
    ----------
    request : TrayRequest
        Request to execute.
    transport : TrayTransport
        Transport to send it with.
    debug_level : FetchTrayDebugLevel, optional
        Amount of request/response logging.

    Returns
    -------
    TrayResponse
        Parsed data for 2xx responses, an error otherwise.

    Raises
    ------
    Exception
        Anything raised while building the request, by the transport or by
        ``request.parse_result`` is propagated unchanged.
    """
    url = request.get_url_with_params()
    headers = request.get_headers()
    body = request.get_body()

    if debug_level is FetchTrayDebugLevel.EVERYTHING:
        log.info(
            event="Sending tray request",
            method=request.method,
            url=url,
            headers=mask_headers(headers),
        )

    response = await transport.send(method=request.method, url=url, headers=headers, body=body)

    if not response.is_success:
        error = error_from_response(response)
        if debug_level is not FetchTrayDebugLevel.NONE:
            log.warning(
                event="Tray request returned an error",
                method=request.method,
                url=url,
                status_code=response.status_code,
                error=error.message,
            )
        return TrayResponse(error=error, status_code=response.status_code)

    data_raw = _decode_body(response)
    if debug_level is FetchTrayDebugLevel.EVERYTHING:
        log.info(
            event="Tray request succeeded",
            method=request.method,
            url=url,
            status_code=response.status_code,
        )
    return TrayResponse(
        data=request.parse_result(data_raw),
        data_raw=data_raw,
        status_code=response.status_code,
    )
