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

"""Exception hierarchy for :mod:`bindkit`.

Every failure raised while binding request data derives from
:class:`BindkitError`. Failures that originate from untrusted input shape are
:class:`HTTPError` subclasses carrying the status code a server should answer
with, so callers can translate them into a response without inspecting the
concrete type.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import ClassVar, Self, override


class BindkitError(Exception):
    """Base class for all bindkit exceptions.

    Subclasses may also inherit from builtin exception types (``ValueError``,
    ``TypeError``) so that generic handlers keep working.
    """


class HTTPError(BindkitError):
    """Error carrying an HTTP status code and a client-facing message.

    When no message is supplied the standard reason phrase for the status code
    is used and ``str()`` renders as ``"<phrase> (<code>)"``. An explicit
    message is rendered verbatim. Wrapped causes are kept on ``__cause__``.

    Example::

        try:
            binder.bind(request, target)
        except HTTPError as error:
            return Response(status=error.status_code, body=error.message)
    """

    default_status: ClassVar[int] = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(
        self, message: str | None = None, *, status_code: int | None = None
    ) -> None:
        code = int(status_code if status_code is not None else self.default_status)
        self.status_code = code
        self._explicit = message is not None
        self.message = message if message is not None else HTTPStatus(code).phrase
        super().__init__(self.message)

    @classmethod
    def wrap(
        cls,
        error: BaseException,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ) -> Self:
        """Return a new instance whose ``__cause__`` is ``error``.

        ``message`` defaults to ``str(error)``.
        """

        text = message if message is not None else str(error)
        wrapped = cls(text, status_code=status_code)
        wrapped.__cause__ = error
        return wrapped

    @override
    def __str__(self) -> str:
        if self._explicit:
            return self.message
        return f"{self.message} ({self.status_code})"


class BindError(HTTPError):
    """Client-fault binding failure (400 Bad Request)."""

    default_status: ClassVar[int] = HTTPStatus.BAD_REQUEST


class UnsupportedMediaTypeError(HTTPError):
    """Raised when a body cannot be bound for the request's content type."""

    default_status: ClassVar[int] = HTTPStatus.UNSUPPORTED_MEDIA_TYPE


class DecodeError(BindError, ValueError):
    """Raised when a structured or form body payload is malformed.

    Wraps the underlying decoder error and folds positional details (line
    numbers, offending type names) into the message when available.
    """


class StructuralBindingError(BindError, TypeError):
    """Raised when the target's shape cannot be bound.

    Common causes:

    - The target is neither a dataclass instance nor a mapping (form source).
    - An embedded dataclass field also declares a tag for the active source.
    - A tagged field has a type the coercer does not support.
    """


class ConversionError(BindError, ValueError):
    """Raised when a string cannot be parsed into a field's scalar type."""


class CustomDecodeError(BindError, ValueError):
    """Raised when a type's ``from_param`` hook rejects a value.

    The hook's own message is kept unchanged and the original exception is
    available on ``__cause__``.
    """


class ConfigError(BindkitError, ValueError):
    """Raised when binder configuration is invalid."""


__all__ = [
    "BindError",
    "BindkitError",
    "ConfigError",
    "ConversionError",
    "CustomDecodeError",
    "DecodeError",
    "HTTPError",
    "StructuralBindingError",
    "UnsupportedMediaTypeError",
]
