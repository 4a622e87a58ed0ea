"""
Declarative request descriptions.

A ``TrayRequest`` subclass describes one kind of resource: where it lives,
how its pages continue, how raw bodies become results and metadata. The
controller only talks to requests through the methods defined here.
"""

from __future__ import annotations

import json
import re
import typing as t
from urllib.parse import quote, urlencode, urlparse

from pydantic import BaseModel, ConfigDict, Field

from fetchtray.exceptions import MissingPathParamError
from fetchtray.metadata import DEFAULT_METADATA, TrayRequestMetadata
from fetchtray.pagination import PagePagination, TrayPagination

_PATH_PARAM_PATTERN = re.compile(r"\{(\w+)\}")
_JSON_CONTENT_TYPE = "application/json"

RequestT = t.TypeVar("RequestT", bound="TrayRequest")


class TrayEnvironment(BaseModel):
    """
    Base URL and default headers shared by the requests of one backend.

    Parameters
    ----------
    base_url : str
        Prefix for relative request URLs.
    headers : dict[str, str]
        Headers sent with every request of this environment.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = ""
    headers: dict[str, str] = Field(default_factory=dict)


class TrayRequest(BaseModel):
    """
    Description of a single HTTP resource request.

    Parameters
    ----------
    method : str
        HTTP method.
    url : str
        URL template. ``{name}`` placeholders are filled from the params.
    params : dict[str, str | None]
        Path and query params.
    overwrite_params : dict[str, str | None]
        Overlay applied on top of ``params``. A ``None`` value removes the
        param from the request.
    headers : dict[str, str]
        Request headers, applied over the environment headers.
    body : typing.Any
        Request body. ``str`` and ``bytes`` are sent as is, anything else is
        JSON-encoded.
    environment : TrayEnvironment | None
        Backend the request belongs to.

    Notes
    -----
    Instances are frozen; use ``with_overwrite_params`` to derive a request
    with different overrides.
    """

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str
    params: dict[str, str | None] = Field(default_factory=dict)
    overwrite_params: dict[str, str | None] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    body: t.Any = None
    environment: TrayEnvironment | None = None

    def merged_params(self) -> dict[str, str]:
        """
        Return params with overrides applied and unset values dropped.

        Returns
        -------
        dict[str, str]
            Effective params in insertion order.
        """
        merged = {**self.params, **self.overwrite_params}
        return {key: value for key, value in merged.items() if value is not None}

    def with_overwrite_params(self: RequestT, overwrite_params: t.Mapping[str, str | None]) -> RequestT:
        """
        Derive a request whose overrides include ``overwrite_params``.

        Parameters
        ----------
        overwrite_params : typing.Mapping[str, str | None]
            New overrides. Keys not mentioned keep their current override.

        Returns
        -------
        RequestT
            New request; ``self`` is left unchanged.
        """
        return self.model_copy(
            update={"overwrite_params": {**self.overwrite_params, **dict(overwrite_params)}}
        )

    def get_url_with_params(self) -> str:
        """
        Resolve the URL template against the effective params.

        Returns
        -------
        str
            Absolute (or environment-relative) URL with path params filled in
            and the remaining params as query string.

        Raises
        ------
        MissingPathParamError
            If a ``{name}`` placeholder has no value.
        """
        params = self.merged_params()
        used: set[str] = set()

        def _fill(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in params:
                raise MissingPathParamError(name=name, url=self.url)
            used.add(name)
            return quote(params[name], safe="")

        url = self._join_base_url(path=_PATH_PARAM_PATTERN.sub(_fill, self.url))
        query = [(key, value) for key, value in params.items() if key not in used]
        if query:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(query)}"
        return url

    def _join_base_url(self, *, path: str) -> str:
        if self.environment is None or not self.environment.base_url:
            return path
        if urlparse(path).scheme:
            return path
        return f"{self.environment.base_url.rstrip('/')}/{path.lstrip('/')}"

    def get_headers(self) -> dict[str, str]:
        """
        Build the headers sent with the request.

        Returns
        -------
        dict[str, str]
            Environment headers overlaid with request headers, plus a JSON
            content type when the body gets JSON-encoded.
        """
        headers = dict(self.environment.headers) if self.environment is not None else {}
        headers.update(self.headers)
        has_content_type = any(key.lower() == "content-type" for key in headers)
        if self._body_is_json() and not has_content_type:
            headers["content-type"] = _JSON_CONTENT_TYPE
        return headers

    def _body_is_json(self) -> bool:
        return self.body is not None and not isinstance(self.body, (str, bytes))

    def get_body(self) -> bytes | None:
        """
        Encode the request body.

        Returns
        -------
        bytes | None
            Encoded body, ``None`` when the request has no body.
        """
        if self.body is None:
            return None
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return json.dumps(self.body).encode("utf-8")

    def parse_result(self, raw: t.Any) -> t.Any:
        """
        Turn a decoded response body into the request's result type.

        The default returns the decoded body unchanged.
        """
        return raw

    def merge_paginated_results(self, old: t.Any, new: t.Any) -> t.Any:
        """
        Combine an accumulated result with the next page.

        Parameters
        ----------
        old : typing.Any
            Accumulated result, ``None`` if nothing was fetched yet.
        new : typing.Any
            Result of the page that just arrived.

        Returns
        -------
        typing.Any
            Lists and tuples are concatenated, mappings merged; otherwise the
            new page replaces the old result.
        """
        if old is None:
            return new
        if isinstance(old, list) and isinstance(new, list):
            return [*old, *new]
        if isinstance(old, tuple) and isinstance(new, tuple):
            return old + new
        if isinstance(old, dict) and isinstance(new, dict):
            return {**old, **new}
        return new

    def generate_metadata(self, original_request: TrayRequest, raw_body: t.Any) -> TrayRequestMetadata:
        """
        Derive metadata from a raw response body.

        The default carries no information.
        """
        return DEFAULT_METADATA

    def pagination(self: RequestT) -> TrayPagination[RequestT]:
        """
        Return the strategy that derives the next page of this request.
        """
        return PagePagination(self)
