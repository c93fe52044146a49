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

"""FastAPI integration.

:func:`bound` turns a dataclass into a FastAPI dependency that binds the
incoming request onto a fresh instance::

    from typing import Annotated

    from fastapi import Depends, FastAPI

    from bindkit.contrib.fastapi import bound

    app = FastAPI()

    @app.put("/orders/{order_id}")
    def update_order(order: Annotated[Order, Depends(bound(Order))]) -> dict:
        ...

Binding failures become :class:`fastapi.HTTPException` responses carrying the
error's status code (400 or 415) and message.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import cast

from fastapi import HTTPException, Request as StarletteRequest

from .._typing import zero_instance
from ..binder import Binder, get_request_binder
from ..errors import HTTPError
from ..request import Request

__all__ = ["bound", "from_starlette"]


async def from_starlette(request: StarletteRequest) -> Request:
    """Read ``request`` fully and return an equivalent :class:`Request`."""

    body = await request.body()
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return Request(
        request.method,
        target,
        headers=request.headers.items(),
        body=body,
    )


def bound[T](
    cls: type[T], *, binder: Binder | None = None
) -> Callable[[StarletteRequest], Awaitable[T]]:
    """Return a dependency that binds each request onto a new ``cls``."""

    async def dependency(request: StarletteRequest) -> object:
        active = binder if binder is not None else get_request_binder()
        if active is None:
            raise RuntimeError("undefined request binder")
        target = zero_instance(cls)
        try:
            active.bind(await from_starlette(request), target)
        except HTTPError as error:
            raise HTTPException(
                status_code=error.status_code, detail=error.message
            ) from error
        return target

    return cast(Callable[[StarletteRequest], Awaitable[T]], dependency)
