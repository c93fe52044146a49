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

"""Configuration for :class:`bindkit.binder.DefaultBinder`."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, cast

import yaml

from .errors import ConfigError

ENV_MAX_MEMORY: Final[str] = "BINDKIT_MAX_MEMORY"
ENV_BODY_METHODS: Final[str] = "BINDKIT_BODY_METHODS"
ENV_CASE_INSENSITIVE: Final[str] = "BINDKIT_CASE_INSENSITIVE"

DEFAULT_MAX_MEMORY: Final[int] = 32 << 20
DEFAULT_BODY_METHODS: Final[frozenset[str]] = frozenset({"POST", "PUT", "PATCH"})

_TRUE_STRINGS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})

__all__ = [
    "DEFAULT_BODY_METHODS",
    "DEFAULT_MAX_MEMORY",
    "BinderConfig",
    "load_config",
]


@dataclass(frozen=True, slots=True)
class BinderConfig:
    """Resolved binder settings.

    ``max_memory`` bounds how many bytes of a multipart file part are held in
    memory before the parser spills it to disk. ``body_methods`` lists the
    methods whose body is bound by :meth:`DefaultBinder.bind`.
    ``case_insensitive`` enables the case-insensitive key fallback.
    """

    max_memory: int = DEFAULT_MAX_MEMORY
    body_methods: frozenset[str] = field(default=DEFAULT_BODY_METHODS)
    case_insensitive: bool = True

    def __post_init__(self) -> None:
        if self.max_memory < 1:
            raise ConfigError("max_memory must be a positive number of bytes.")
        object.__setattr__(
            self,
            "body_methods",
            frozenset(method.upper() for method in self.body_methods),
        )


def load_config(
    path: Path | Mapping[str, object] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> BinderConfig:
    """Load binder settings from a file or mapping plus the environment.

    Parameters
    ----------
    path:
        A ``.toml``, ``.yaml`` or ``.yml`` file, an in-memory mapping, or
        ``None`` for defaults. Settings may sit at the root or under a
        ``[bindkit]`` table.
    env:
        Environment mapping consulted for ``BINDKIT_*`` overrides. Defaults to
        :data:`os.environ`.
    """

    env_map = os.environ if env is None else env
    if path is None:
        raw: Mapping[str, object] = {}
    elif isinstance(path, Mapping):
        raw = path
    else:
        raw = _load_config_file(path)

    section = raw.get("bindkit")
    if isinstance(section, Mapping):
        raw = cast(Mapping[str, object], section)

    settings: dict[str, object] = {
        "max_memory": raw.get("max_memory"),
        "body_methods": raw.get("body_methods"),
        "case_insensitive": raw.get("case_insensitive"),
    }
    if ENV_MAX_MEMORY in env_map:
        settings["max_memory"] = env_map[ENV_MAX_MEMORY]
    if ENV_BODY_METHODS in env_map:
        settings["body_methods"] = env_map[ENV_BODY_METHODS]
    if ENV_CASE_INSENSITIVE in env_map:
        settings["case_insensitive"] = env_map[ENV_CASE_INSENSITIVE]

    return BinderConfig(
        max_memory=_coerce_size(settings["max_memory"]),
        body_methods=_coerce_methods(settings["body_methods"]),
        case_insensitive=_coerce_flag(settings["case_insensitive"]),
    )


def _load_config_file(path: Path) -> Mapping[str, object]:
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise FileNotFoundError(msg)

    suffix = path.suffix.lower()
    data: object
    if suffix == ".toml":
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    elif suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    else:
        msg = f"Unsupported configuration format: {path.suffix}"
        raise ConfigError(msg)

    if not isinstance(data, MutableMapping):
        msg = "Configuration file must contain a mapping at the root."
        raise ConfigError(msg)
    return cast(Mapping[str, object], data)


def _coerce_size(value: object) -> int:
    if value is None:
        return DEFAULT_MAX_MEMORY
    if isinstance(value, bool):
        raise ConfigError(f"max_memory must be an integer (got {value!r}).")
    try:
        return int(cast(int | str, value))
    except (TypeError, ValueError) as exc:
        msg = f"max_memory must be an integer (got {value!r})."
        raise ConfigError(msg) from exc


def _coerce_methods(value: object) -> frozenset[str]:
    if value is None:
        return DEFAULT_BODY_METHODS
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
        return frozenset(part for part in parts if part)
    if isinstance(value, Iterable):
        methods: set[str] = set()
        for item in cast(Iterable[object], value):
            if not isinstance(item, str):
                raise ConfigError(f"body_methods entries must be strings: {item!r}")
            methods.add(item)
        return frozenset(methods)
    raise ConfigError(f"body_methods must be a list or comma string (got {value!r}).")


def _coerce_flag(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigError(f"case_insensitive must be a boolean (got {value!r}).")
