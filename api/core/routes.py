"""
Route table snapshot and freezing.

Once a server handle exists its routes are fixed: the table handed out as
`handle.routes` and the list the router dispatches from are the same set,
and neither can change.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, NoReturn

from fastapi import FastAPI
from fastapi.routing import APIRoute

from .errors import ConfigurationError

RouteTable = Mapping[tuple[str, str], Callable[..., Any]]


def build_route_table(app: FastAPI) -> RouteTable:
    """
    Snapshot (METHOD, path) -> endpoint for every API route on `app`.

    Raises ConfigurationError if two routes claim the same method and path.
    """
    table: dict[tuple[str, str], Callable[..., Any]] = {}
    for route in app.routes:
        if not isinstance(route, APIRoute):
            continue
        for method in sorted(route.methods or ()):
            key = (method, route.path)
            if key in table:
                raise ConfigurationError(f"Duplicate route: {method} {route.path}")
            table[key] = route.endpoint
    return MappingProxyType(table)


class FrozenRouteList(list):
    """
    Route list that rejects every mutation.
    """

    def _frozen(self, *args: Any, **kwargs: Any) -> NoReturn:
        raise ConfigurationError("Routes are fixed once the server handle exists.")

    append = extend = insert = remove = pop = clear = sort = reverse = _frozen
    __setitem__ = __delitem__ = __iadd__ = __imul__ = _frozen


def freeze_routes(app: FastAPI) -> RouteTable:
    table = build_route_table(app)
    app.router.routes = FrozenRouteList(app.router.routes)
    return table
