from __future__ import annotations

import logging
from typing import Any

import requests

from ..models.error_record import ErrorKind
from ..models.errors import ImportFailure
from ..models.submission import (
    BatchCreateResponse,
    FailureByIndex,
    FailureByKey,
    ReportedFailure,
    UnidentifiedFailure,
)

"""HTTP collaborator for the batch-create and reference-data endpoints.

The backend is inconsistent about envelopes (bare list, ``{data: ...}``,
``{data: {data: ...}}``) and about how it names failed items (submission
index, or the record's own identifier). Both are normalised here, once, so
the rest of the pipeline only sees BatchCreateResponse and plain lists.
"""

__all__ = [
    "ApiClient",
    "SubmissionTransportError",
    "normalize_batch_response",
    "normalize_list_response",
]

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_CREATED_COUNT_KEYS = ("createdCount", "successCount", "created_count")
_FAILED_KEYS = ("failed", "failures", "errors")
_INDEX_KEYS = ("originalIndex", "index")
_MESSAGE_KEYS = ("error", "message", "reason")


class SubmissionTransportError(ImportFailure):
    """The HTTP call itself failed; the server created nothing we know of."""

    kind = ErrorKind.SUBMISSION_TRANSPORT_ERROR

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _unwrap(payload: Any) -> Any:
    # at most two envelopes: {data: ...} and {data: {data: ...}}
    for _ in range(2):
        if (
            isinstance(payload, dict)
            and "data" in payload
            and isinstance(payload["data"], (dict, list))
            and "created" not in payload
            and not any(k in payload for k in _FAILED_KEYS)
        ):
            payload = payload["data"]
    return payload


def normalize_list_response(payload: Any) -> list[Any]:
    """Reference-data response (``list | {data: list} | {data: {data: list}}``) -> list."""
    payload = _unwrap(payload)
    if isinstance(payload, list):
        return payload
    raise SubmissionTransportError(
        f"unrecognised list response of type {type(payload).__name__}"
    )


def _failure_message(item: dict[str, Any]) -> str:
    for key in _MESSAGE_KEYS:
        value = item.get(key)
        if value:
            return str(value)
    return "Failed"


def _to_failure(item: Any, identifier: str | None) -> ReportedFailure:
    if not isinstance(item, dict):
        return UnidentifiedFailure(str(item))
    message = _failure_message(item)
    for key in _INDEX_KEYS:
        value = item.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return FailureByIndex(value, message)
    if identifier:
        if item.get(identifier) is not None:
            return FailureByKey(str(item[identifier]), message)
        for nested in ("data", "record"):
            inner = item.get(nested)
            if isinstance(inner, dict) and inner.get(identifier) is not None:
                return FailureByKey(str(inner[identifier]), message)
    return UnidentifiedFailure(message)


def normalize_batch_response(payload: Any, identifier: str | None = None) -> BatchCreateResponse:
    """Normalise any batch-create response shape into BatchCreateResponse.

    ``identifier`` names the record field the server may use to report a
    failed item (e.g. ``lecturerId``).

    Raises:
        SubmissionTransportError: the body matches no known shape
    """
    payload = _unwrap(payload)
    if isinstance(payload, list):
        created = tuple(payload)
        return BatchCreateResponse(created=created, created_count=len(created))
    if not isinstance(payload, dict):
        raise SubmissionTransportError(
            f"unrecognised batch-create response of type {type(payload).__name__}"
        )

    known = ("created",) + _CREATED_COUNT_KEYS + _FAILED_KEYS
    if not any(k in payload for k in known):
        raise SubmissionTransportError(
            f"unrecognised batch-create response keys: {sorted(payload)}"
        )

    raw_created = payload.get("created")
    created = tuple(raw_created) if isinstance(raw_created, list) else ()
    created_count = len(created)
    for key in _CREATED_COUNT_KEYS:
        value = payload.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            created_count = value
            break

    failed_items: list[Any] = []
    for key in _FAILED_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            failed_items = value
            break

    return BatchCreateResponse(
        created=created,
        created_count=created_count,
        failures=tuple(_to_failure(item, identifier) for item in failed_items),
    )


def _server_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "").strip()[:200]
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return ""


class ApiClient:
    """Thin requests.Session wrapper bound to one backend base URL."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        url = self.url_for(endpoint)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("event=transport_error method=%s url=%s error=%s", method, url, e)
            raise SubmissionTransportError(f"{method} {endpoint} failed: {e}") from e

        if not resp.ok:
            detail = _server_message(resp)
            logger.error(
                "event=http_error method=%s url=%s status=%s detail=%s",
                method, url, resp.status_code, detail,
            )
            message = f"{method} {endpoint} returned HTTP {resp.status_code}"
            if detail:
                message += f": {detail}"
            raise SubmissionTransportError(message, status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise SubmissionTransportError(
                f"{method} {endpoint} returned a body that is not JSON", status_code=resp.status_code
            ) from e

    def create_many(self, endpoint: str, payload: dict[str, Any]) -> Any:
        """POST one batch-create request and return the decoded body."""
        logger.debug("event=create_many endpoint=%s keys=%s", endpoint, sorted(payload))
        return self._request("POST", endpoint, json=payload)

    def fetch_reference(self, endpoint: str, params: dict[str, Any] | None = None) -> list[Any]:
        """GET a reference list such as ``/departments``."""
        return normalize_list_response(self._request("GET", endpoint, params=params))
