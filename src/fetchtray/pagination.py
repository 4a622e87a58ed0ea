"""
Strategies that derive the request for the next page.
"""

from __future__ import annotations

import typing as t
from abc import ABC, abstractmethod

from fetchtray.exceptions import PaginationError

if t.TYPE_CHECKING:
    from fetchtray.request import TrayRequest

RequestT = t.TypeVar("RequestT", bound="TrayRequest")


class TrayPagination(ABC, t.Generic[RequestT]):
    """
    Pagination strategy bound to one request.

    Parameters
    ----------
    request : RequestT
        Request describing the page fetched last.
    """

    def __init__(self, request: RequestT) -> None:
        self.request = request

    @abstractmethod
    def fetch_more_request(self) -> RequestT:
        """
        Return the request for the page after ``self.request``.
        """

    def _int_param(self, *, name: str, default: int) -> int:
        raw = self.request.merged_params().get(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError as error:
            raise PaginationError(f"Param '{name}' must be an integer, got '{raw}'") from error


class PagePagination(TrayPagination[RequestT]):
    """
    Page-number pagination: each continuation asks for ``page + 1``.

    Parameters
    ----------
    request : RequestT
        Request describing the page fetched last.
    page_param : str, optional
        Name of the page param.
    first_page : int, optional
        Page assumed when the request does not set the param.
    """

    def __init__(self, request: RequestT, *, page_param: str = "page", first_page: int = 1) -> None:
        super().__init__(request)
        self.page_param = page_param
        self.first_page = first_page

    def current_page(self) -> int:
        return self._int_param(name=self.page_param, default=self.first_page)

    def fetch_more_request(self) -> RequestT:
        return self.request.with_overwrite_params({self.page_param: str(self.current_page() + 1)})


class OffsetPagination(TrayPagination[RequestT]):
    """
    Offset/limit pagination: each continuation skips one more ``limit``.

    Parameters
    ----------
    request : RequestT
        Request describing the page fetched last.
    offset_param : str, optional
        Name of the offset param.
    limit_param : str, optional
        Name of the limit param.
    default_limit : int, optional
        Limit assumed when the request does not set it.
    """

    def __init__(
        self,
        request: RequestT,
        *,
        offset_param: str = "offset",
        limit_param: str = "limit",
        default_limit: int = 20,
    ) -> None:
        super().__init__(request)
        self.offset_param = offset_param
        self.limit_param = limit_param
        self.default_limit = default_limit

    def fetch_more_request(self) -> RequestT:
        offset = self._int_param(name=self.offset_param, default=0)
        limit = self._int_param(name=self.limit_param, default=self.default_limit)
        if limit <= 0:
            raise PaginationError(f"Param '{self.limit_param}' must be positive, got '{limit}'")
        return self.request.with_overwrite_params(
            {
                self.offset_param: str(offset + limit),
                self.limit_param: str(limit),
            }
        )
