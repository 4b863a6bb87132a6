"""
URL building helpers.

Path placeholders come in three spellings: ``{name}``, ``{name?}`` (optional)
and ``:name``. Query strings are produced by a pluggable ``QueryEncoder``;
two strategies ship with the package:

* ``bracket_query_encoder`` (default): ``tags[]=a&tags[]=b`` and ``filter[name]=x``
* ``repeat_query_encoder``: ``tags=a&tags=b`` and ``filter.name=x``

Deeply nested arrays of objects follow the same recursion in both strategies,
e.g. ``items[][id]=1`` for brackets and ``items.id=1`` for repeated keys.
"""

import re
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import quote

ParameterEncoder = Callable[[Any], str]
QueryEncoder = Callable[[Mapping[str, Any], ParameterEncoder], str]

PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)(\?)?\}|:([A-Za-z_]\w*)")


def stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_parameter(value: Any) -> str:
    return quote(stringify(value), safe="-_.!~*'()")


def interpolate_path(
    template: str,
    params: Mapping[str, Any],
    encoder: ParameterEncoder = encode_parameter,
) -> tuple[str, frozenset[str]]:
    """
    Resolve placeholders in a path template.

    Args:
        template: Declared path, e.g. ``/users/{id}`` or ``/users/:id``
        params: Call parameters
        encoder: Encoder applied to every substituted value

    Returns:
        The resolved path and the names of the params it consumed. Required
        placeholders without a value stay verbatim; optional ones are dropped.
    """
    consumed: set[str] = set()
    dropped = False

    def substitute(match: re.Match) -> str:
        nonlocal dropped
        name = match.group(1) or match.group(3)
        optional = match.group(2) is not None
        value = params.get(name)
        if value is None:
            if optional:
                dropped = True
                return ""
            return match.group(0)
        consumed.add(name)
        return encoder(value)

    path = PLACEHOLDER_PATTERN.sub(substitute, template)
    if dropped:
        path = re.sub(r"/{2,}", "/", path)
        if len(path) > 1:
            path = path.rstrip("/")
    return path, frozenset(consumed)


def _flatten_brackets(key: str, value: Any, encoder: ParameterEncoder, pairs: list[str]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for child_key, child_value in value.items():
            _flatten_brackets(f"{key}[{encoder(child_key)}]", child_value, encoder, pairs)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _flatten_brackets(f"{key}[]", item, encoder, pairs)
    else:
        pairs.append(f"{key}={encoder(value)}")


def _flatten_repeated(key: str, value: Any, encoder: ParameterEncoder, pairs: list[str]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        for child_key, child_value in value.items():
            _flatten_repeated(f"{key}.{encoder(child_key)}", child_value, encoder, pairs)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _flatten_repeated(key, item, encoder, pairs)
    else:
        pairs.append(f"{key}={encoder(value)}")


def bracket_query_encoder(
    params: Mapping[str, Any], encoder: ParameterEncoder = encode_parameter
) -> str:
    pairs: list[str] = []
    for key, value in params.items():
        _flatten_brackets(encoder(key), value, encoder, pairs)
    return "&".join(pairs)


def repeat_query_encoder(
    params: Mapping[str, Any], encoder: ParameterEncoder = encode_parameter
) -> str:
    pairs: list[str] = []
    for key, value in params.items():
        _flatten_repeated(encoder(key), value, encoder, pairs)
    return "&".join(pairs)
