"""
Result metadata and the generator that derives it from a raw response.
"""

from __future__ import annotations

import typing as t

from pydantic import BaseModel, ConfigDict, Field

if t.TYPE_CHECKING:
    from fetchtray.request import TrayRequest


class TrayRequestMetadata(BaseModel):
    """
    Pagination and result information derived from a raw response.

    Parameters
    ----------
    has_more_data : bool
        Whether another page can be fetched.
    total : int | None
        Total number of items reported by the server.
    page : int | None
        Page the raw response belongs to.
    cursor : str | None
        Opaque cursor for the next page.
    extra : dict[str, typing.Any]
        Request-specific values.
    """

    model_config = ConfigDict(frozen=True)

    has_more_data: bool = False
    total: int | None = None
    page: int | None = None
    cursor: str | None = None
    extra: dict[str, t.Any] = Field(default_factory=dict)


DEFAULT_METADATA = TrayRequestMetadata()


def generate_metadata(original_request: TrayRequest, raw_body: t.Any) -> TrayRequestMetadata:
    """
    Derive metadata for a raw response body.

    Parameters
    ----------
    original_request : TrayRequest
        Request held by the controller, before any per-call override.
    raw_body : typing.Any
        Decoded response body, not yet parsed or merged. ``None`` is passed on
        as an empty mapping.

    Returns
    -------
    TrayRequestMetadata
        Metadata produced by the request type.
    """
    return original_request.generate_metadata(
        original_request,
        raw_body if raw_body is not None else {},
    )
