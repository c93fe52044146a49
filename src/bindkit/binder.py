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

"""Source dispatch for request binding.

:class:`DefaultBinder` chooses how a request's data reaches a target:

- ``application/json`` bodies go through :func:`bindkit.decoders.decode_json`.
- ``application/xml`` and ``text/xml`` bodies go through
  :func:`bindkit.decoders.decode_xml`.
- URL-encoded and multipart bodies are walked with the ``form`` tags.
- Query strings are walked with the ``query`` tags.

:meth:`DefaultBinder.bind` binds the body (for POST, PUT and PATCH) and then
the query string, so query values override body values field by field.
"""

from __future__ import annotations

from typing import Protocol
from xml.etree.ElementTree import ParseError

from ._logging import StructuredLogger, get_logger
from .config import BinderConfig
from .decoders import XMLUnsupportedTypeError, decode_json, decode_xml
from .errors import (
    ConversionError,
    CustomDecodeError,
    DecodeError,
    HTTPError,
    StructuralBindingError,
    UnsupportedMediaTypeError,
)
from .request import (
    MIME_APPLICATION_FORM,
    MIME_APPLICATION_JSON,
    MIME_APPLICATION_XML,
    MIME_MULTIPART_FORM,
    MIME_TEXT_XML,
    Request,
)
from .walker import bind_values

__all__ = [
    "Binder",
    "DefaultBinder",
    "get_request_binder",
    "set_request_binder",
]

# Raised by bindkit itself while decoding; reported as malformed bodies.
_INTERNAL_ERRORS = (ConversionError, CustomDecodeError, StructuralBindingError)


class Binder(Protocol):
    """Anything able to bind a :class:`Request` onto a target."""

    def bind(self, request: Request, target: object) -> None:
        """Populate ``target`` from ``request`` or raise an ``HTTPError``."""
        ...


class DefaultBinder:
    """Content-type driven binder.

    Binding is not atomic: when a field fails to coerce, fields earlier in
    declaration order keep their new values.
    """

    def __init__(
        self,
        config: BinderConfig | None = None,
        *,
        logger: StructuredLogger | None = None,
    ) -> None:
        super().__init__()
        self.config = config if config is not None else BinderConfig()
        self._logger = logger if logger is not None else get_logger(__name__)

    def bind_body(self, request: Request, target: object) -> None:
        """Bind the request body onto ``target`` according to its content type.

        Form bodies include URL query values after body values, mirroring
        :meth:`Request.form_params`.
        """

        if request.content_length == 0:
            return

        content_type = request.content_type
        log = self._logger.bind(content_type=content_type, method=request.method)
        if content_type.startswith(MIME_APPLICATION_JSON):
            log.debug("Binding JSON body.", event="bind.body.json")
            self._bind_json(request, target)
        elif content_type.startswith((MIME_APPLICATION_XML, MIME_TEXT_XML)):
            log.debug("Binding XML body.", event="bind.body.xml")
            self._bind_xml(request, target)
        elif content_type.startswith((MIME_APPLICATION_FORM, MIME_MULTIPART_FORM)):
            log.debug("Binding form body.", event="bind.body.form")
            params = request.form_params(
                max_memory=self.config.max_memory,
                body_methods=self.config.body_methods,
            )
            bind_values(
                target,
                params,
                "form",
                case_insensitive=self.config.case_insensitive,
            )
        else:
            log.debug("Unsupported body media type.", event="bind.body.unsupported")
            raise UnsupportedMediaTypeError

    def bind_query_params(self, request: Request, target: object) -> None:
        """Bind the query string onto ``target`` using ``query`` tags."""

        bind_values(
            target,
            request.query_params(),
            "query",
            case_insensitive=self.config.case_insensitive,
        )

    def bind(self, request: Request, target: object) -> None:
        """Bind the body (when the method carries one) and then the query."""

        if request.method in self.config.body_methods:
            self.bind_body(request, target)
        self.bind_query_params(request, target)

    def _bind_json(self, request: Request, target: object) -> None:
        try:
            decode_json(request.body, target)
        except _INTERNAL_ERRORS as error:
            raise self._json_rejected(error) from error
        except HTTPError:
            raise
        except (ValueError, TypeError, RecursionError) as error:
            raise self._json_rejected(error) from error

    def _json_rejected(self, error: Exception) -> DecodeError:
        self._logger.debug(
            "JSON body rejected.",
            event="bind.body.json_failed",
            context={"error": str(error), "error_type": type(error).__name__},
        )
        return DecodeError.wrap(error)

    def _bind_xml(self, request: Request, target: object) -> None:
        try:
            decode_xml(request.body, target)
        except XMLUnsupportedTypeError as error:
            message = (
                f"Unsupported type error: type={error.type_label}, error={error}"
            )
            raise DecodeError.wrap(error, message) from error
        except ParseError as error:
            line = error.position[0]
            message = f"Syntax error: line={line}, error={error}"
            raise DecodeError.wrap(error, message) from error
        except (HTTPError, ValueError, TypeError, RecursionError) as error:
            raise DecodeError.wrap(error) from error


_request_binder: Binder | None = DefaultBinder()


def get_request_binder() -> Binder | None:
    """Return the binder used by :meth:`Request.bind`."""

    return _request_binder


def set_request_binder(binder: Binder | None) -> Binder | None:
    """Install ``binder`` for :meth:`Request.bind`; return the previous one."""

    global _request_binder  # noqa: PLW0603
    previous = _request_binder
    _request_binder = binder
    return previous
