from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .models import DEFAULT_ROUTE_FIELD


def _route_value(data: Any, route_field: str) -> Any:
    if isinstance(data, Mapping):
        return data.get(route_field)
    return getattr(data, route_field, None)


def extract_params(data: Any, route_field: str = DEFAULT_ROUTE_FIELD) -> list[Any]:
    """Turn a publish payload into positional callback arguments.

    - None -> []
    - str -> [data]
    - list / tuple -> the items, verbatim
    - mapping or object with a truthy route field -> [route value, data]
    - anything else -> [] (dropped silently)

    Local and cross-window dispatch both go through here, so a subscriber
    sees the same arguments whichever way a message arrived.
    """
    if data is None:
        return []
    if isinstance(data, str):
        return [data]
    if isinstance(data, (list, tuple)):
        return list(data)

    route = _route_value(data, route_field)
    if route:
        return [route, data]
    return []
