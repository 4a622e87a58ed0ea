"""
Combine freshly fetched data with the data a controller already holds.
"""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:
    from fetchtray.request import TrayRequest

ResultT = t.TypeVar("ResultT")

ResultCombinator = t.Callable[[ResultT | None, ResultT], ResultT]


def merge_results(
    request: TrayRequest,
    *,
    old_data: ResultT | None,
    new_data: ResultT,
    is_pagination_continuation: bool,
    combinator: ResultCombinator[ResultT] | None = None,
) -> ResultT:
    """
    Merge new result data into the previous data.

    Parameters
    ----------
    request : TrayRequest
        Request whose ``merge_paginated_results`` handles page continuation.
    old_data : ResultT | None
        Data from the current state.
    new_data : ResultT
        Parsed data of the response that just completed.
    is_pagination_continuation : bool
        ``True`` for ``fetch_more`` calls.
    combinator : ResultCombinator | None, optional
        Caller-supplied ``(old, new) -> combined`` applied before merging.

    Returns
    -------
    ResultT
        The data to commit. Plain fetches drop ``old_data``.
    """
    effective_new_data = combinator(old_data, new_data) if combinator is not None else new_data

    if is_pagination_continuation:
        return request.merge_paginated_results(old_data, effective_new_data)

    return effective_new_data
