"""
Error types and the normalizer every failed fetch goes through.
"""

from __future__ import annotations

import json
import typing as t

import httpx
from pydantic import BaseModel, Field

UNCATCHABLE_STATUS_CODE = 500
_MESSAGE_FIELDS = ("message", "error", "detail")


class FetchTrayError(RuntimeError):
    """
    Base class for exceptions raised by fetchtray itself.
    """


class MissingPathParamError(FetchTrayError, KeyError):
    """
    Raised when a URL template placeholder has no value.
    """

    def __init__(self, *, name: str, url: str) -> None:
        super().__init__(f"No value for path parameter '{name}' in url '{url}'")
        self.name = name
        self.url = url

    def __str__(self) -> str:
        # KeyError quotes its message otherwise.
        return str(self.args[0])


class PaginationError(FetchTrayError):
    """
    Raised when a pagination strategy cannot derive the next page.
    """


class TrayRequestError(BaseModel):
    """
    Single error shape stored on a failed lifecycle state.

    Parameters
    ----------
    message : str
        Human-readable error message.
    errors : list[typing.Any]
        Structured sub-errors, empty when the source provided none.
    status_code : int
        Response status code, or ``500`` for transport-level failures.
    """

    message: str
    errors: list[t.Any] = Field(default_factory=list)
    status_code: int = UNCATCHABLE_STATUS_CODE


def normalize_error(error: BaseException | TrayRequestError) -> TrayRequestError:
    """
    Convert a caught exception into a ``TrayRequestError``.

    Parameters
    ----------
    error : BaseException | TrayRequestError
        Caught failure. An already-normalized error is returned unchanged.

    Returns
    -------
    TrayRequestError
        Error with ``status_code=500``, no sub-errors and the stringified
        exception as message.
    """
    if isinstance(error, TrayRequestError):
        return error
    return TrayRequestError(
        message=str(error),
        errors=[],
        status_code=UNCATCHABLE_STATUS_CODE,
    )


def error_from_response(response: httpx.Response) -> TrayRequestError:
    """
    Build the error for a completed response with a non-2xx status.

    Parameters
    ----------
    response : httpx.Response
        Completed response.

    Returns
    -------
    TrayRequestError
        Error carrying the response status code, the message found in the
        JSON body (or the reason phrase) and the body's ``errors`` list.
    """
    payload: t.Any = None
    if response.content:
        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = None

    message = ""
    errors: list[t.Any] = []
    if isinstance(payload, dict):
        for field in _MESSAGE_FIELDS:
            value = payload.get(field)
            if isinstance(value, str) and value:
                message = value
                break
        raw_errors = payload.get("errors")
        if isinstance(raw_errors, list):
            errors = raw_errors

    if not message:
        message = response.reason_phrase or f"Request failed with status {response.status_code}"

    return TrayRequestError(
        message=message,
        errors=errors,
        status_code=response.status_code,
    )
