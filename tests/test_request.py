"""
Tests for TrayRequest URL, header and body construction and pagination.
"""

import pytest

from fetchtray import OffsetPagination, PagePagination, TrayEnvironment, TrayRequest
from fetchtray.exceptions import MissingPathParamError, PaginationError


def test_url_without_params_is_unchanged():
    request = TrayRequest(url="https://api.example.com/items")
    assert request.get_url_with_params() == "https://api.example.com/items"


def test_path_params_are_filled_and_rest_become_query():
    request = TrayRequest(
        url="https://api.example.com/users/{user_id}/items",
        params={"user_id": "a b", "q": "red shoes", "empty": None},
    )
    assert (
        request.get_url_with_params() == "https://api.example.com/users/a%20b/items?q=red+shoes"
    )


def test_overwrite_params_take_precedence_and_none_removes():
    request = TrayRequest(
        url="https://api.example.com/items",
        params={"page": "1", "sort": "name"},
        overwrite_params={"page": "3", "sort": None},
    )
    assert request.merged_params() == {"page": "3"}
    assert request.get_url_with_params() == "https://api.example.com/items?page=3"


def test_query_appended_to_existing_query_string():
    request = TrayRequest(url="https://api.example.com/items?fixed=1", params={"page": "2"})
    assert request.get_url_with_params() == "https://api.example.com/items?fixed=1&page=2"


def test_missing_path_param_raises():
    request = TrayRequest(url="https://api.example.com/users/{user_id}")
    with pytest.raises(MissingPathParamError) as exc_info:
        request.get_url_with_params()
    assert exc_info.value.name == "user_id"
    assert isinstance(exc_info.value, KeyError)


def test_relative_url_joins_environment_base_url():
    environment = TrayEnvironment(base_url="https://api.example.com/v1/")
    request = TrayRequest(url="/items/{id}", params={"id": "9"}, environment=environment)
    assert request.get_url_with_params() == "https://api.example.com/v1/items/9"


def test_absolute_url_ignores_environment_base_url():
    environment = TrayEnvironment(base_url="https://api.example.com")
    request = TrayRequest(url="https://other.example.com/x", environment=environment)
    assert request.get_url_with_params() == "https://other.example.com/x"


def test_headers_overlay_environment_and_add_json_content_type():
    environment = TrayEnvironment(headers={"authorization": "Bearer env", "x-app": "tray"})
    request = TrayRequest(
        method="POST",
        url="https://api.example.com/items",
        headers={"authorization": "Bearer request"},
        body={"name": "lamp"},
        environment=environment,
    )
    assert request.get_headers() == {
        "authorization": "Bearer request",
        "x-app": "tray",
        "content-type": "application/json",
    }


def test_explicit_content_type_is_kept():
    request = TrayRequest(
        url="https://api.example.com/items",
        headers={"Content-Type": "application/vnd.api+json"},
        body={"a": 1},
    )
    assert request.get_headers() == {"Content-Type": "application/vnd.api+json"}


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (None, None),
        (b"raw", b"raw"),
        ("text", b"text"),
        ({"a": [1, 2]}, b'{"a": [1, 2]}'),
    ],
)
def test_get_body_encoding(body, expected):
    request = TrayRequest(url="https://api.example.com/items", body=body)
    assert request.get_body() == expected


def test_string_body_does_not_set_content_type():
    request = TrayRequest(url="https://api.example.com/items", body="text")
    assert request.get_headers() == {}


def test_with_overwrite_params_returns_new_request():
    request = TrayRequest(url="https://api.example.com/items", overwrite_params={"a": "1"})

    updated = request.with_overwrite_params({"b": "2"})

    assert updated is not request
    assert updated.overwrite_params == {"a": "1", "b": "2"}
    assert request.overwrite_params == {"a": "1"}


def test_default_merge_paginated_results():
    request = TrayRequest(url="https://api.example.com/items")

    assert request.merge_paginated_results(None, [1]) == [1]
    assert request.merge_paginated_results([1], [2]) == [1, 2]
    assert request.merge_paginated_results((1,), (2,)) == (1, 2)
    assert request.merge_paginated_results({"a": 1}, {"b": 2}) == {"a": 1, "b": 2}
    assert request.merge_paginated_results("old", "new") == "new"


def test_default_pagination_is_page_based():
    request = TrayRequest(url="https://api.example.com/items")

    pagination = request.pagination()
    next_request = pagination.fetch_more_request()

    assert isinstance(pagination, PagePagination)
    assert pagination.current_page() == 1
    assert next_request.overwrite_params == {"page": "2"}
    assert next_request.pagination().fetch_more_request().overwrite_params == {"page": "3"}


def test_page_pagination_custom_param_and_first_page():
    request = TrayRequest(url="https://api.example.com/items")

    next_request = PagePagination(request, page_param="p", first_page=0).fetch_more_request()

    assert next_request.get_url_with_params() == "https://api.example.com/items?p=1"


def test_page_pagination_rejects_non_integer_page():
    request = TrayRequest(url="https://api.example.com/items", params={"page": "two"})
    with pytest.raises(PaginationError):
        request.pagination().fetch_more_request()


def test_offset_pagination_advances_by_limit():
    request = TrayRequest(
        url="https://api.example.com/items", params={"offset": "10", "limit": "5"}
    )

    next_request = OffsetPagination(request).fetch_more_request()

    assert next_request.merged_params() == {"offset": "15", "limit": "5"}


def test_offset_pagination_uses_default_limit():
    request = TrayRequest(url="https://api.example.com/items")

    next_request = OffsetPagination(request, default_limit=25).fetch_more_request()

    assert next_request.merged_params() == {"offset": "25", "limit": "25"}


def test_offset_pagination_rejects_non_positive_limit():
    request = TrayRequest(url="https://api.example.com/items", params={"limit": "0"})
    with pytest.raises(PaginationError):
        OffsetPagination(request).fetch_more_request()
