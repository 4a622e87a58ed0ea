"""
Lifecycle controller for one declarative request.

The controller owns a single ``TrayRequestState`` cell. Every transition
replaces the whole snapshot, so anything read from ``controller.state`` is
consistent. Fetches funnel through ``_perform_fetch``; each call takes a new
generation and only the call holding the latest generation may commit its
terminal state. Calls that settle after a newer one started still return
their computed state to their own caller, they just don't commit it.
"""

from __future__ import annotations

import asyncio
import typing as t
from dataclasses import dataclass, replace

import httpx
import structlog

from fetchtray.config import FetchTrayDebugLevel, resolve_config
from fetchtray.exceptions import TrayRequestError, normalize_error
from fetchtray.logging import logging_context
from fetchtray.merge import ResultCombinator, merge_results
from fetchtray.metadata import DEFAULT_METADATA, TrayRequestMetadata, generate_metadata
from fetchtray.request import TrayRequest
from fetchtray.transport import TrayRequestMock, TrayTransport, build_transport, execute_request

log = structlog.get_logger(__name__)

RequestT = t.TypeVar("RequestT", bound=TrayRequest)
ResultT = t.TypeVar("ResultT")

FetchOperation = t.Callable[..., t.Awaitable["TrayRequestState[t.Any, t.Any] | None"]]
RefetchOperation = t.Callable[
    [t.Mapping[str, str | None]], t.Awaitable["TrayRequestState[t.Any, t.Any] | None"]
]
FetchMoreOperation = t.Callable[[], t.Awaitable["TrayRequestState[t.Any, t.Any] | None"]]


async def _noop_fetch(
    new_request: t.Any = None,
    combinator: t.Any = None,
) -> None:
    return None


async def _noop_refetch(overwrite_params: t.Mapping[str, str | None]) -> None:
    return None


async def _noop_fetch_more() -> None:
    return None


@dataclass(frozen=True)
class TrayRequestState(t.Generic[RequestT, ResultT]):
    """
    Immutable snapshot of a request's lifecycle.

    Parameters
    ----------
    request : RequestT
        Request the snapshot belongs to.
    metadata : TrayRequestMetadata
        Metadata of the last successful response, default otherwise.
    fetch : FetchOperation
        ``fetch(new_request=None, combinator=None)``.
    refetch : RefetchOperation
        ``refetch(overwrite_params)``.
    fetch_more : FetchMoreOperation
        ``fetch_more()``.
    loading : bool
        A non-pagination fetch is in flight.
    fetch_more_loading : bool
        A pagination continuation is in flight.
    data : ResultT | None
        Accumulated result.
    error : TrayRequestError | None
        Error of the last settled fetch.
    """

    request: RequestT
    metadata: TrayRequestMetadata
    fetch: FetchOperation
    refetch: RefetchOperation
    fetch_more: FetchMoreOperation
    loading: bool = True
    fetch_more_loading: bool = False
    data: ResultT | None = None
    error: TrayRequestError | None = None


class TrayRequestController(t.Generic[RequestT, ResultT]):
    """
    Issue a request, track its state and expose re-fetch operations.

    Parameters
    ----------
    request : RequestT
        Request to manage.
    client : httpx.AsyncClient | None, optional
        Custom client for the real transport.
    mock : TrayRequestMock | None, optional
        Canned response; when set, no network I/O happens.
    transport : TrayTransport | None, optional
        Explicit transport, overriding ``client`` and ``mock``.
    lazy_run : bool, optional
        If ``True``, ``start`` does not fetch; call ``fetch`` manually.
    debug_level : FetchTrayDebugLevel | None, optional
        Request/response logging level. Defaults to ``FETCHTRAY_DEBUG_LEVEL``.
    """

    def __init__(
        self,
        request: RequestT,
        *,
        client: httpx.AsyncClient | None = None,
        mock: TrayRequestMock | None = None,
        transport: TrayTransport | None = None,
        lazy_run: bool = False,
        debug_level: FetchTrayDebugLevel | None = None,
    ) -> None:
        self._request = request
        self._lazy_run = lazy_run
        self._owns_transport = transport is None
        self._transport = transport or build_transport(client=client, mock=mock)
        self._debug_level = debug_level if debug_level is not None else resolve_config().debug_level
        self._generation = 0
        self._active = True
        self._started = False
        self._startup_task: asyncio.Task[TrayRequestState[RequestT, ResultT]] | None = None
        self._in_flight = 0
        self._settled = asyncio.Event()
        self._settled.set()
        self._state: TrayRequestState[RequestT, ResultT] = TrayRequestState(
            request=request,
            metadata=DEFAULT_METADATA,
            fetch=_noop_fetch,
            refetch=_noop_refetch,
            fetch_more=_noop_fetch_more,
            loading=not lazy_run,
        )

        log.debug(
            event="Initialized TrayRequestController",
            request_type=type(request).__name__,
            method=request.method,
            lazy_run=lazy_run,
            transport=type(self._transport).__name__,
        )

    @property
    def state(self) -> TrayRequestState[RequestT, ResultT]:
        return self._state

    @property
    def request(self) -> RequestT:
        return self._request

    @property
    def transport(self) -> TrayTransport:
        return self._transport

    @property
    def closed(self) -> bool:
        return not self._active

    def start(self) -> asyncio.Task[TrayRequestState[RequestT, ResultT]] | None:
        """
        Run the startup behaviour once.

        Returns
        -------
        asyncio.Task | None
            Task of the initial fetch, or ``None`` in lazy mode. Repeated
            calls return the same value without fetching again.

        Raises
        ------
        RuntimeError
            If called outside a running event loop in non-lazy mode.
        """
        if self._started:
            return self._startup_task
        self._started = True

        if self._lazy_run:
            # A manual fetch may already have settled; keep its state.
            if self._generation > 0:
                return None
            self._commit(
                TrayRequestState(
                    request=self._request,
                    metadata=DEFAULT_METADATA,
                    loading=False,
                    **self._bind_operations(request=self._request, combinator=None),
                )
            )
            return None

        loop = asyncio.get_running_loop()
        self._startup_task = loop.create_task(self._perform_fetch(force=False))
        return self._startup_task

    def close(self) -> None:
        """
        Mark the controller as torn down. In-flight fetches keep running but
        no longer commit.
        """
        self._active = False

    async def aclose(self) -> None:
        """
        Close the controller, let in-flight fetches settle, then close the
        transport it created.
        """
        self.close()
        if self._startup_task is not None and not self._startup_task.done():
            await asyncio.wait({self._startup_task})
        await self._settled.wait()
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> TrayRequestController[RequestT, ResultT]:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: t.Any,
    ) -> None:
        await self.aclose()

    async def fetch(
        self,
        new_request: RequestT | None = None,
        combinator: ResultCombinator[ResultT] | None = None,
    ) -> TrayRequestState[RequestT, ResultT]:
        """
        Run the request again.

        Parameters
        ----------
        new_request : RequestT | None, optional
            Request to run instead of the held one, for this call only.
        combinator : ResultCombinator | None, optional
            ``(old, new) -> combined`` applied to the fetched data.

        Returns
        -------
        TrayRequestState
            Terminal state computed by this call.
        """
        if not self._state.loading:
            self._commit(replace(self._state, loading=True))
        return await self._perform_fetch(force=True, request=new_request, combinator=combinator)

    async def refetch(
        self,
        overwrite_params: t.Mapping[str, str | None],
        combinator: ResultCombinator[ResultT] | None = None,
    ) -> TrayRequestState[RequestT, ResultT]:
        """
        Run the held request again with extra param overrides.

        Parameters
        ----------
        overwrite_params : typing.Mapping[str, str | None]
            Overrides merged into the held request's ``overwrite_params``.
        combinator : ResultCombinator | None, optional
            ``(old, new) -> combined`` applied to the fetched data.

        Returns
        -------
        TrayRequestState
            Terminal state computed by this call.
        """
        self._commit(replace(self._state, loading=True))
        self._request = self._request.with_overwrite_params(overwrite_params)
        return await self._perform_fetch(force=True, request=self._request, combinator=combinator)

    async def fetch_more(
        self,
        request: RequestT | None = None,
        combinator: ResultCombinator[ResultT] | None = None,
    ) -> TrayRequestState[RequestT, ResultT]:
        """
        Fetch the page after ``request`` and append it to the current data.

        Parameters
        ----------
        request : RequestT | None, optional
            Request of the last fetched page. Defaults to the request of the
            current state.
        combinator : ResultCombinator | None, optional
            ``(old, new) -> combined`` applied before the paginated merge.

        Returns
        -------
        TrayRequestState
            Terminal state computed by this call.
        """
        self._commit(replace(self._state, fetch_more_loading=True))
        page_request = request if request is not None else self._state.request
        try:
            next_request = page_request.pagination().fetch_more_request()
        except Exception as error:
            generation = self._next_generation()
            return self._settle_failure(
                error=normalize_error(error),
                attempted_request=page_request,
                generation=generation,
                cause=error,
            )
        return await self._perform_fetch(
            force=True,
            request=next_request,
            combinator=combinator,
            is_pagination_continuation=True,
        )

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _bind_operations(
        self,
        *,
        request: RequestT,
        combinator: ResultCombinator[ResultT] | None,
    ) -> dict[str, t.Any]:
        """
        Build the operations stored on a committed state.

        ``fetch_more`` continues from ``request`` and ``refetch`` and
        ``fetch_more`` reuse ``combinator``.
        """

        async def _refetch(
            overwrite_params: t.Mapping[str, str | None],
        ) -> TrayRequestState[RequestT, ResultT]:
            return await self.refetch(overwrite_params, combinator)

        async def _fetch_more() -> TrayRequestState[RequestT, ResultT]:
            return await self.fetch_more(request, combinator)

        return {"fetch": self.fetch, "refetch": _refetch, "fetch_more": _fetch_more}

    def _commit(self, state: TrayRequestState[RequestT, ResultT], *, generation: int | None = None) -> bool:
        if not self._active:
            log.debug(event="Skipped commit on closed controller", request_url=state.request.url)
            return False
        if generation is not None and generation != self._generation:
            log.debug(
                event="Discarded stale fetch result",
                generation=generation,
                current_generation=self._generation,
            )
            return False
        self._state = state
        return True

    async def _perform_fetch(
        self,
        *,
        force: bool,
        request: RequestT | None = None,
        combinator: ResultCombinator[ResultT] | None = None,
        is_pagination_continuation: bool = False,
    ) -> TrayRequestState[RequestT, ResultT]:
        """
        Execute a request and commit the terminal state.

        Parameters
        ----------
        force : bool
            When ``False``, an already settled controller returns its state
            without fetching.
        request : RequestT | None, optional
            Request to run instead of the held one.
        combinator : ResultCombinator | None, optional
            ``(old, new) -> combined`` applied to the fetched data.
        is_pagination_continuation : bool, optional
            Merge the result into the current data as a further page.

        Returns
        -------
        TrayRequestState
            Terminal state, whether or not it could be committed.
        """
        if not force and not self._state.loading and not self._state.fetch_more_loading:
            return self._state

        generation = self._next_generation()
        self._in_flight += 1
        self._settled.clear()
        try:
            return await self._fetch_and_settle(
                generation=generation,
                request=request,
                combinator=combinator,
                is_pagination_continuation=is_pagination_continuation,
            )
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._settled.set()

    async def _fetch_and_settle(
        self,
        *,
        generation: int,
        request: RequestT | None,
        combinator: ResultCombinator[ResultT] | None,
        is_pagination_continuation: bool,
    ) -> TrayRequestState[RequestT, ResultT]:
        original_request = self._request
        attempted_request = request if request is not None else original_request

        with logging_context(request_type=type(attempted_request).__name__):
            try:
                response = await execute_request(
                    attempted_request,
                    transport=self._transport,
                    debug_level=self._debug_level,
                )
                if response.error is not None:
                    return self._settle_failure(
                        error=response.error,
                        attempted_request=attempted_request,
                        generation=generation,
                    )
                data = merge_results(
                    original_request,
                    old_data=self._state.data,
                    new_data=response.data,
                    is_pagination_continuation=is_pagination_continuation,
                    combinator=combinator,
                )
                metadata = generate_metadata(original_request, response.data_raw)
            except Exception as error:
                return self._settle_failure(
                    error=normalize_error(error),
                    attempted_request=attempted_request,
                    generation=generation,
                    cause=error,
                )

        state = TrayRequestState(
            request=attempted_request,
            metadata=metadata,
            loading=False,
            fetch_more_loading=False,
            data=data,
            error=None,
            **self._bind_operations(request=attempted_request, combinator=combinator),
        )
        self._commit(state, generation=generation)
        return state

    def _settle_failure(
        self,
        *,
        error: TrayRequestError,
        attempted_request: RequestT,
        generation: int,
        cause: BaseException | None = None,
    ) -> TrayRequestState[RequestT, ResultT]:
        log.error(
            event="Tray request failed",
            url=_describe_url(attempted_request),
            error=error.message,
            status_code=error.status_code,
            exc_info=cause,
        )
        state = TrayRequestState(
            request=self._request,
            metadata=DEFAULT_METADATA,
            loading=False,
            fetch_more_loading=False,
            data=None,
            error=error,
            **self._bind_operations(request=self._request, combinator=None),
        )
        self._commit(state, generation=generation)
        return state


def _describe_url(request: TrayRequest) -> str:
    # The URL itself may be what failed to build.
    try:
        return request.get_url_with_params()
    except Exception:
        return request.url
