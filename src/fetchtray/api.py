"""
Entry points for users.

``use_tray_request`` builds a ``TrayRequestController`` that manages a request
over time. ``make_tray_request`` runs a request once and returns the parsed
response without any lifecycle state.
"""

import typing as t

import httpx

from fetchtray.config import FetchTrayDebugLevel, resolve_config
from fetchtray.controller import TrayRequestController
from fetchtray.request import TrayRequest
from fetchtray.transport import TrayRequestMock, TrayResponse, build_transport, execute_request

RequestT = t.TypeVar("RequestT", bound=TrayRequest)


def use_tray_request(
    request: RequestT,
    *,
    client: httpx.AsyncClient | None = None,
    mock: TrayRequestMock | None = None,
    lazy_run: bool = False,
    debug_level: FetchTrayDebugLevel | None = None,
) -> TrayRequestController[RequestT, t.Any]:
    """
    Create a controller for ``request``.

    Use it as ``async with use_tray_request(request) as controller:`` to fetch
    on entry and stop committing on exit.

    Parameters
    ----------
    request : RequestT
        Request to manage.
    client : httpx.AsyncClient | None, optional
        Custom client for the real transport.
    mock : TrayRequestMock | None, optional
        Canned response for tests.
    lazy_run : bool, optional
        Don't fetch on start; wait for ``fetch`` to be called. Useful for
        POST/PUT/DELETE requests.
    debug_level : FetchTrayDebugLevel | None, optional
        Request/response logging level.

    Returns
    -------
    TrayRequestController
        Controller that has not been started yet.
    """
    return TrayRequestController(
        request,
        client=client,
        mock=mock,
        lazy_run=lazy_run,
        debug_level=debug_level,
    )


async def make_tray_request(
    request: TrayRequest,
    *,
    client: httpx.AsyncClient | None = None,
    mock: TrayRequestMock | None = None,
    debug_level: FetchTrayDebugLevel | None = None,
) -> TrayResponse[t.Any]:
    """
    Execute ``request`` once.

    Parameters
    ----------
    request : TrayRequest
        Request to execute.
    client : httpx.AsyncClient | None, optional
        Custom client for the real transport.
    mock : TrayRequestMock | None, optional
        Canned response for tests.
    debug_level : FetchTrayDebugLevel | None, optional
        Request/response logging level.

    Returns
    -------
    TrayResponse
        Parsed data or response-level error. Transport failures are raised.
    """
    transport = build_transport(client=client, mock=mock)
    try:
        return await execute_request(
            request,
            transport=transport,
            debug_level=debug_level if debug_level is not None else resolve_config().debug_level,
        )
    finally:
        await transport.aclose()
