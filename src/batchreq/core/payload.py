"""Fluent builder that accumulates request fields into a payload."""

from collections.abc import Callable, Mapping
from typing import Any, Self

from batchreq.ports.http import RequestPayload

__all__ = ["PayloadBuilder", "Validator"]

Validator = Callable[[Any], Any]

# Keys routed to explicit fields by build(); anything else lands in the options bag.
_FIELDS = ("url", "headers", "body", "json", "qs", "timeout", "resolve_with_full_response")


class PayloadBuilder:
    """Accumulate url/headers/body/query/timeout/options for one request.

    Every setter returns the builder so calls can be chained. The assembled
    request is exposed through the read-only ``payload`` property.
    """

    def __init__(self) -> None:
        self._url: str | None = None
        self._headers: dict[str, str] | None = None
        self._body: Any = None
        self._json: Any = None
        self._qs: dict[str, Any] | None = None
        self._timeout: float | None = None
        self._resolve_with_full_response: bool | None = None
        self._options: dict[str, Any] | None = None
        self._validator: Validator | None = None

    @property
    def payload(self) -> RequestPayload:
        """Snapshot of the accumulated fields.

        Returns:
            A new RequestPayload; mutating the builder afterwards does not affect it.
        """
        return RequestPayload(
            url=self._url,
            headers=dict(self._headers) if self._headers is not None else None,
            body=self._body,
            json=self._json,
            qs=dict(self._qs) if self._qs is not None else None,
            timeout=self._timeout,
            resolve_with_full_response=bool(self._resolve_with_full_response),
            options=dict(self._options or {}),
        )

    @property
    def validator(self) -> Validator | None:
        return self._validator

    def build(self, data: Mapping[str, Any] | None = None, /, **fields: Any) -> Self:
        """Set many fields at once.

        Known keys set the matching field when not None; every other key
        becomes part of the options bag, replacing it when non-empty.

        Args:
            data: Mapping of payload keys.
            **fields: Same as ``data``, merged on top of it.

        Returns:
            The builder.
        """
        merged = {**(data or {}), **fields}
        options = {k: v for k, v in merged.items() if k not in _FIELDS}

        for key in _FIELDS:
            value = merged.get(key)
            if value is not None:
                setattr(self, f"_{key}", value)

        if options:
            self._options = options
        return self

    def url(self, url: str) -> Self:
        self._url = url
        return self

    def header(self, key: str, value: str) -> Self:
        if self._headers is None:
            self._headers = {}
        self._headers[key] = value
        return self

    def headers(self, headers: Mapping[str, str]) -> Self:
        """Merge headers; keys that are already set keep their value."""
        self._headers = {**headers, **(self._headers or {})}
        return self

    def body(self, body: Any) -> Self:
        self._body = body
        return self

    def json(self, json: Any = True) -> Self:
        self._json = json
        return self

    def resolve_with_full_response(self, resolve_with_full_response: bool = True) -> Self:
        self._resolve_with_full_response = resolve_with_full_response
        return self

    def qs(self, qs: Mapping[str, Any]) -> Self:
        self._qs = dict(qs)
        return self

    def timeout(self, timeout_ms: float) -> Self:
        self._timeout = timeout_ms
        return self

    def option(self, key: str, value: Any) -> Self:
        return self.build({**(self._options or {}), key: value})

    def options(self, options: Mapping[str, Any]) -> Self:
        """Replace the options bag, routing known keys to their fields."""
        self._options = None
        return self.build(options)

    def validate(self, validator: Validator) -> Self:
        """Attach a function applied to every successful result.

        Raises:
            ValueError: If a validator was already attached.
        """
        if self._validator is not None:
            raise ValueError("A validator is already attached to this request")
        self._validator = validator
        return self
