import httpx
from postgrest.exceptions import APIError

from storefront.repositories.errors import RemoteErrorKind, RemoteStoreError, translate_error


def test_known_postgrest_codes_map_to_kinds():
    missing = translate_error(APIError({"message": "relation does not exist", "code": "42P01"}))
    no_rows = translate_error(APIError({"message": "no rows", "code": "PGRST116"}))
    denied = translate_error(APIError({"message": "denied", "code": "42501"}))

    assert missing.kind is RemoteErrorKind.TABLE_MISSING
    assert no_rows.kind is RemoteErrorKind.NO_ROWS
    assert denied.kind is RemoteErrorKind.PERMISSION_DENIED
    assert missing.code == "42P01"


def test_unknown_code_is_unknown():
    err = translate_error(APIError({"message": "boom", "code": "XX000"}))
    assert err.kind is RemoteErrorKind.UNKNOWN


def test_transport_errors_are_unavailable():
    err = translate_error(httpx.ConnectError("connection refused"))
    assert err.kind is RemoteErrorKind.UNAVAILABLE


def test_remote_store_error_passes_through():
    original = RemoteStoreError(RemoteErrorKind.NO_ROWS, "nothing")
    assert translate_error(original) is original
    assert str(original) == "[no_rows] nothing"
