"""
Home directory providers.

Discovery never reads the process environment directly. Anything that
needs the user's home directory takes a ``HomeProvider``: a callable with
no arguments returning a path, or None when no home can be determined.
"""

from __future__ import annotations

import collections.abc as _abc
import os as _os
import pathlib as _pathlib
import typing as _typing

HomeProvider = _typing.Callable[[], _pathlib.Path | None]
"""Zero-argument callable returning the home directory, or None."""

HOME_ENV_VARS = ("HOME", "USERPROFILE")
"""Variables holding the home directory, in precedence order.

HOMEDRIVE + HOMEPATH is consulted after these.
"""


class EnvironHomeProvider:
    """
    Resolve the home directory from environment variables.

    Checks HOME, then USERPROFILE, then HOMEDRIVE joined with HOMEPATH.
    The first non-empty value wins. Passing ``environ`` pins the provider
    to a fixed mapping; otherwise the live process environment is read on
    every call.
    """

    def __init__(self, environ: _abc.Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def _get(self, key: str) -> str:
        environ = _os.environ if self._environ is None else self._environ
        return environ.get(key, "").strip()

    def __call__(self) -> _pathlib.Path | None:
        for key in HOME_ENV_VARS:
            value = self._get(key)
            if value:
                return _pathlib.Path(value)

        drive = self._get("HOMEDRIVE")
        path = self._get("HOMEPATH")
        if drive and path:
            return _pathlib.Path(drive + path)

        return None

    def __repr__(self) -> str:
        source = "os.environ" if self._environ is None else "mapping"
        return f"EnvironHomeProvider({source})"


class StaticHomeProvider:
    """Always return the same home directory (or None)."""

    def __init__(self, home: str | _pathlib.Path | None) -> None:
        self._home = _pathlib.Path(home) if home is not None else None

    def __call__(self) -> _pathlib.Path | None:
        return self._home

    def __repr__(self) -> str:
        return f"StaticHomeProvider({self._home!r})"


def default_home_provider() -> HomeProvider:
    """Get a provider bound to the live process environment."""
    return EnvironHomeProvider()


def expand_home(
    path: _pathlib.Path,
    home_provider: HomeProvider | None = None,
) -> _pathlib.Path | None:
    """
    Expand a leading ``~`` using a home provider.

    Args:
        path: Path that may start with ``~``.
        home_provider: Provider to consult. Defaults to the process
            environment.

    Returns:
        The expanded path, the path unchanged if it has no ``~``, or None
        when it needs a home directory and none can be determined.
    """
    parts = path.parts
    if not parts or parts[0] != "~":
        return path

    provider = home_provider or default_home_provider()
    home = provider()
    if home is None:
        return None
    return home.joinpath(*parts[1:])
