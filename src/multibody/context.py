from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from multibody.decoding import parse_json_body
from multibody.exceptions import MalformedBodyError
from multibody.markers import BindingErrors

BodyReader = Callable[[], Awaitable[bytes | str]]


class RequestJsonCache:
    """Hold one request's raw JSON body so every bound parameter can re-read it.

    The underlying reader is awaited at most once. The check-and-populate step
    runs under an ``asyncio.Lock`` so concurrent tasks serving the same request
    cannot trigger a second read. The parsed tree (or the parse failure) is
    memoized as well.
    """

    def __init__(self, read_body: BodyReader, *, encoding: str = "utf-8") -> None:
        self._read_body = read_body
        self._encoding = encoding
        self._lock = asyncio.Lock()
        self._text: str | None = None
        self._tree: Any = None
        self._parse_error: MalformedBodyError | None = None
        self._parsed = False
        self.read_count = 0

    @classmethod
    def from_text(cls, json_body: str) -> RequestJsonCache:
        """Build a cache that is already populated and never reads a stream."""
        cache = cls(_never_read)
        cache._text = json_body
        return cache

    async def get_text(self) -> str:
        if self._text is not None:
            return self._text
        async with self._lock:
            if self._text is None:
                raw = await self._read_body()
                self.read_count += 1
                try:
                    self._text = self._decode(raw)
                except MalformedBodyError as exc:
                    self._text = ""
                    self._parse_error = exc
                    self._parsed = True
        return self._text

    async def get_tree(self) -> Any:
        """Return the parsed body, raising ``MalformedBodyError`` on every call if invalid."""
        text = await self.get_text()
        if not self._parsed:
            try:
                self._tree = parse_json_body(text)
            except MalformedBodyError as exc:
                self._parse_error = exc
            self._parsed = True
        if self._parse_error is not None:
            raise self._parse_error
        return self._tree

    def _decode(self, raw: bytes | str) -> str:
        if isinstance(raw, str):
            return raw
        try:
            return raw.decode(self._encoding)
        except UnicodeDecodeError as exc:
            raise MalformedBodyError(f"body is not valid {self._encoding}") from exc


class BindingContext:
    """Per-request binding state passed explicitly to the binder.

    Owns the body cache and the validation errors collected per parameter.
    Created when a request enters a wrapped endpoint and dropped when it returns.
    """

    def __init__(self, body: RequestJsonCache) -> None:
        self.body = body
        self._errors: dict[str, BindingErrors] = {}

    def errors_for(self, parameter_name: str) -> BindingErrors:
        errors = self._errors.get(parameter_name)
        if errors is None:
            errors = BindingErrors(parameter_name)
            self._errors[parameter_name] = errors
        return errors

    @property
    def errors(self) -> dict[str, BindingErrors]:
        return dict(self._errors)


async def _never_read() -> bytes:
    msg = "Body reader called on a pre-populated cache."
    raise RuntimeError(msg)


__all__ = ["BindingContext", "BodyReader", "RequestJsonCache"]
