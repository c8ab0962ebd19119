# storefront/repositories/errors.py
from enum import Enum

import httpx
from postgrest.exceptions import APIError


class RemoteErrorKind(str, Enum):
    TABLE_MISSING = "table_missing"
    NO_ROWS = "no_rows"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


# Postgres / PostgREST codes we care about
_CODE_KINDS: dict[str, RemoteErrorKind] = {
    "42P01": RemoteErrorKind.TABLE_MISSING,
    "PGRST116": RemoteErrorKind.NO_ROWS,
    "42501": RemoteErrorKind.PERMISSION_DENIED,
}


class RemoteStoreError(Exception):
    """
    Failure talking to the remote store, tagged with a closed error kind.

    Services switch on `kind`; the raw code is kept only for logging.
    """

    def __init__(self, kind: RemoteErrorKind, message: str, code: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.code = code

    def __str__(self) -> str:
        if self.code:
            return f"[{self.kind.value}:{self.code}] {self.args[0]}"
        return f"[{self.kind.value}] {self.args[0]}"


def translate_error(exc: Exception) -> RemoteStoreError:
    """
    Map a Supabase SDK / transport exception onto RemoteStoreError.
    """
    if isinstance(exc, RemoteStoreError):
        return exc
    if isinstance(exc, APIError):
        code = exc.code
        kind = _CODE_KINDS.get(code or "", RemoteErrorKind.UNKNOWN)
        return RemoteStoreError(kind, exc.message or "Remote store error", code)
    if isinstance(exc, httpx.HTTPError):
        return RemoteStoreError(RemoteErrorKind.UNAVAILABLE, str(exc) or type(exc).__name__)
    return RemoteStoreError(RemoteErrorKind.UNKNOWN, str(exc))
