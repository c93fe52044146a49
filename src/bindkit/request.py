# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Transport-neutral request model consumed by the binder."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlsplit

from python_multipart import create_form_parser
from python_multipart.exceptions import FormParserError

from ._logging import StructuredLogger, get_logger
from .config import DEFAULT_BODY_METHODS, DEFAULT_MAX_MEMORY
from .errors import DecodeError

__all__ = [
    "HEADER_CONTENT_LENGTH",
    "HEADER_CONTENT_TYPE",
    "MIME_APPLICATION_FORM",
    "MIME_APPLICATION_JSON",
    "MIME_APPLICATION_XML",
    "MIME_MULTIPART_FORM",
    "MIME_TEXT_XML",
    "Request",
]

HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CONTENT_LENGTH = "Content-Length"

MIME_APPLICATION_JSON = "application/json"
MIME_APPLICATION_XML = "application/xml"
MIME_TEXT_XML = "text/xml"
MIME_APPLICATION_FORM = "application/x-www-form-urlencoded"
MIME_MULTIPART_FORM = "multipart/form-data"

logger: StructuredLogger = get_logger(__name__)

type HeaderSource = Mapping[str, str] | Iterable[tuple[str, str]]


def _parse_pairs(text: str) -> dict[str, list[str]]:
    values: dict[str, list[str]] = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        values.setdefault(key, []).append(value)
    return values


class Request:
    """A fully read HTTP request.

    ``url`` is the request target (path plus optional query string). Header
    lookups ignore case. ``body`` holds the complete payload; the binder never
    streams.

    Example::

        request = Request(
            "PUT",
            "/orders/7?status=done",
            headers={"Content-Type": "application/json"},
            body=b'{"status": "pending"}',
        )
        request.bind(order)
    """

    def __init__(
        self,
        method: str = "GET",
        url: str = "/",
        *,
        headers: HeaderSource | None = None,
        body: bytes = b"",
        content_length: int | None = None,
    ) -> None:
        super().__init__()
        self.method = method.upper()
        self.url = url
        self.body = body
        self._headers: dict[str, str] = {}
        pairs = headers.items() if isinstance(headers, Mapping) else headers or ()
        for name, value in pairs:
            self._headers[name.lower()] = value
        self._content_length = content_length
        self._query: dict[str, list[str]] | None = None
        self._forms: dict[tuple[int, frozenset[str]], dict[str, list[str]]] = {}

    def header(self, name: str, default: str = "") -> str:
        """Return the value of header ``name`` or ``default``."""

        return self._headers.get(name.lower(), default)

    @property
    def headers(self) -> Mapping[str, str]:
        return dict(self._headers)

    @property
    def content_type(self) -> str:
        return self.header(HEADER_CONTENT_TYPE)

    @property
    def content_length(self) -> int:
        """Explicit length, else the ``Content-Length`` header, else body size."""

        if self._content_length is not None:
            return self._content_length
        declared = self.header(HEADER_CONTENT_LENGTH)
        if declared.strip().isdigit():
            return int(declared)
        return len(self.body)

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def query_string(self) -> str:
        return urlsplit(self.url).query

    def query_params(self) -> dict[str, list[str]]:
        """Return the parsed query string; parsed once and cached."""

        if self._query is None:
            self._query = _parse_pairs(self.query_string)
        return self._query

    def query_param(self, name: str) -> str:
        """Return the first query value for ``name`` or an empty string."""

        values = self.query_params().get(name)
        return values[0] if values else ""

    def form_params(
        self,
        *,
        max_memory: int = DEFAULT_MAX_MEMORY,
        body_methods: Iterable[str] = DEFAULT_BODY_METHODS,
    ) -> dict[str, list[str]]:
        """Return body form values followed by query values for each key.

        Multipart bodies are parsed regardless of method and only their
        non-file parts are returned. URL-encoded bodies are read only when the
        request method is in ``body_methods`` (POST, PUT and PATCH by
        default). Results are cached per ``max_memory`` and ``body_methods``
        combination. Raises :class:`DecodeError` when the body cannot be
        parsed.
        """

        methods = frozenset(method.upper() for method in body_methods)
        cache_key = (max_memory, methods)
        cached = self._forms.get(cache_key)
        if cached is not None:
            return cached

        content_type = self.content_type
        if content_type.startswith(MIME_MULTIPART_FORM):
            form = self._multipart_values(max_memory)
        elif (
            content_type.startswith(MIME_APPLICATION_FORM)
            and self.method in methods
        ):
            try:
                form = _parse_pairs(self.body.decode("utf-8"))
            except UnicodeDecodeError as error:
                raise DecodeError.wrap(error) from error
        else:
            form = {}

        for key, values in self.query_params().items():
            form.setdefault(key, []).extend(values)
        self._forms[cache_key] = form
        return form

    def _multipart_values(self, max_memory: int) -> dict[str, list[str]]:
        values: dict[str, list[str]] = {}
        skipped_files = 0

        def on_field(field: object) -> None:
            name = getattr(field, "field_name", None)
            raw = getattr(field, "value", None)
            if name is None:
                return
            key = bytes(name).decode("utf-8", errors="replace")
            text = bytes(raw).decode("utf-8", errors="replace") if raw else ""
            values.setdefault(key, []).append(text)

        def on_file(file: object) -> None:
            nonlocal skipped_files
            skipped_files += 1
            close = getattr(file, "close", None)
            if callable(close):
                close()

        try:
            parser = create_form_parser(
                {HEADER_CONTENT_TYPE: self.content_type.encode("latin-1")},
                on_field,
                on_file,
                config={"MAX_MEMORY_FILE_SIZE": max_memory},
            )
            _ = parser.write(self.body)
            parser.finalize()
        except (FormParserError, ValueError) as error:
            raise DecodeError.wrap(error) from error

        if skipped_files:
            logger.debug(
                "Multipart file parts are not bound.",
                event="request.form.files_skipped",
                context={"count": skipped_files},
            )
        return values

    def bind(self, target: object) -> None:
        """Bind this request onto ``target`` with the process-wide binder."""

        from .binder import get_request_binder

        binder = get_request_binder()
        if binder is None:
            raise RuntimeError("undefined request binder")
        binder.bind(self, target)
