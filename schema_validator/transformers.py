"""
transformers.py - the registry of value types a schema can refer to
===================================================================

A *transformer* bundles the behaviour of one primitive type:

* ``settings`` - defaults merged into every node using the type
* ``cast``     - best-effort conversion; must never raise
* ``validate`` - raises :class:`ValidationError` when the value is wrong
* ``parse``    - final shaping of an already valid value
* ``loaders``  - other type names the value is piped through first

Every callable receives ``(value, field)`` where *field* is the
:class:`~schema_validator.schema.Resolution` being processed; use
``field.settings`` for the node's merged settings and
``field.throw_error(...)`` to reject the value.

Public API
----------
Transformer, TRANSFORMERS
register(name, transformer, *, aliases=())
unregister(name)
get(name) -> Transformer | None
resolve_type_name(indicator) -> str | list[str]
"""

from __future__ import annotations

import datetime as _dt
import inspect
import logging
import math
import re
from concurrent.futures import Future
from dataclasses import dataclass, field as _field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

import pandas as pd

from .utils import UNDEFINED, cast_throwable
from .validator import SchemaError, ValidationError

__all__ = [
    "TRANSFORMERS",
    "Transformer",
    "get",
    "register",
    "resolve_type_name",
    "unregister",
]

log = logging.getLogger(__name__)

Hook = Callable[[Any, Any], Any]

# --------------------------------------------------------------------------- #
# Record + registry                                                           #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Transformer:
    """Behaviour of one named value type."""

    settings: Mapping[str, Any] = _field(default_factory=dict)
    cast: Optional[Hook] = None
    validate: Optional[Hook] = None
    parse: Optional[Hook] = None
    loaders: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))
        object.__setattr__(self, "loaders", tuple(self.loaders))


TRANSFORMERS: dict[str, Transformer] = {}

# Python classes that stand for a registered name when used as a type.
_ALIASES: dict[type, str] = {}


def register(name: str, transformer: Transformer, *, aliases: Iterable[type] = ()) -> Transformer:
    """Make *transformer* available to schemas under *name*.

    Re-registering an existing name replaces it.  Each class in *aliases*
    may then be used in a schema in place of the name.
    """
    if not isinstance(transformer, Transformer):
        raise TypeError(f"Expected a Transformer, got {type(transformer).__name__}")
    TRANSFORMERS[name] = transformer
    for cls in aliases:
        _ALIASES[cls] = name
    log.debug("registered transformer %s (aliases: %s)", name, [a.__name__ for a in aliases])
    return transformer


def unregister(name: str) -> None:
    """Remove *name* and its aliases from the registry."""
    TRANSFORMERS.pop(name, None)
    for cls in [c for c, n in _ALIASES.items() if n == name]:
        del _ALIASES[cls]
    log.debug("unregistered transformer %s", name)


def get(name: str) -> Transformer | None:
    """Return the transformer registered as *name*, or ``None``."""
    return TRANSFORMERS.get(name)


def resolve_type_name(indicator: Any) -> str | list[str]:
    """Translate a type indicator into a registry name (or list of names).

    ``"String"`` stays as-is, registered classes map through their alias
    (``str`` -> ``"String"``), any other class maps to its ``__name__``,
    and a list or tuple becomes a union of the above.
    """
    if isinstance(indicator, str):
        return indicator
    if isinstance(indicator, (list, tuple)):
        return [resolve_type_name(i) for i in indicator]
    if isinstance(indicator, type):
        return _ALIASES.get(indicator, indicator.__name__)
    raise SchemaError(f"Can't use {indicator!r} as a type")

# --------------------------------------------------------------------------- #
# Array                                                                       #
# --------------------------------------------------------------------------- #

def _validate_array(value, field):
    if not isinstance(value, list):
        field.throw_error(field.settings["type_error"], value=value)


def _parse_array(value, field):
    item_schema = field.settings.get("array_schema")
    if item_schema is None:
        return value

    items, errors = [], []
    for idx, item in enumerate(value):
        try:
            items.append(field.schema.spawn(item_schema, name=str(idx)).parse(item))
        except ValidationError as err:
            errors.extend(err.errors or [err])
    if errors:
        field.throw_error("Invalid array items", value=value, errors=errors)
    return items

# --------------------------------------------------------------------------- #
# BigInt (arbitrary-precision integer)                                        #
# --------------------------------------------------------------------------- #

def _cast_bigint(value, field):
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _validate_bigint(value, field):
    if not isinstance(value, int) or isinstance(value, bool):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# Boolean                                                                     #
# --------------------------------------------------------------------------- #

def _cast_boolean(value, field):
    try:
        return bool(value)
    except (ValueError, TypeError):  # no single truth value, e.g. a DataFrame
        return value


def _validate_boolean(value, field):
    if not isinstance(value, bool):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# Date                                                                        #
# --------------------------------------------------------------------------- #

def _cast_date(value, field):
    if isinstance(value, _dt.datetime):
        return value
    if isinstance(value, bool) or not isinstance(value, (str, int, _dt.date)):
        return value
    try:
        if isinstance(value, int):
            stamp = pd.to_datetime(value, unit="ms")
        else:
            stamp = pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return value
    if pd.isna(stamp):
        return value
    return stamp.to_pydatetime()


def _validate_date(value, field):
    if not isinstance(value, _dt.datetime):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# Function / Object                                                           #
# --------------------------------------------------------------------------- #

def _validate_function(value, field):
    if not callable(value) or isinstance(value, type):
        field.throw_error(field.settings["type_error"], value=value)


def _validate_object(value, field):
    if not isinstance(value, Mapping):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# Number                                                                      #
# --------------------------------------------------------------------------- #

def _cast_number(value, field):
    if not isinstance(value, str):
        return value
    text = value.strip()
    if "_" in text:
        return value
    for kind in (int, float):
        try:
            return kind(text)
        except ValueError:
            continue
    return value


def _validate_number(value, field):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or (isinstance(value, float) and math.isnan(value)):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# Promise (deferred value)                                                    #
# --------------------------------------------------------------------------- #

def _is_promise(value) -> bool:
    return isinstance(value, Future) or inspect.isawaitable(value)


def _cast_promise(value, field):
    if _is_promise(value):
        return value
    future: Future = Future()
    try:
        future.set_result(value() if callable(value) else value)
    except Exception as exc:  # delivered through the future
        future.set_exception(exc)
    return future


def _validate_promise(value, field):
    if not _is_promise(value):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# Set                                                                         #
# --------------------------------------------------------------------------- #

def _cast_set(value, field):
    if isinstance(value, (list, tuple, frozenset)):
        try:
            return set(value)
        except TypeError:  # unhashable members
            return value
    return value


def _validate_set(value, field):
    if not isinstance(value, set):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# String                                                                      #
# --------------------------------------------------------------------------- #

def _cast_string(value, field):
    if isinstance(value, (str, bool, Mapping, list, tuple, set, frozenset)) or value is None or value is UNDEFINED:
        return value
    if isinstance(value, (int, float)) or type(value).__str__ is not object.__str__:
        return str(value)
    return value


def _validate_string(value, field):
    settings = field.settings
    if not isinstance(value, str):
        field.throw_error(settings["type_error"], value=value)

    options = settings.get("enum")
    if options and value not in options:
        field.throw_error(settings["enum_error"], value=value)

    if settings.get("minlength"):
        minlength, error = cast_throwable(settings["minlength"], "Invalid minlength")
        if len(value) < minlength:
            field.throw_error(error, value=value)

    if settings.get("maxlength"):
        maxlength, error = cast_throwable(settings["maxlength"], "Invalid maxlength")
        if len(value) > maxlength:
            field.throw_error(error, value=value)

    if settings.get("regex"):
        regex, error = cast_throwable(settings["regex"], "Invalid regex")
        if not re.search(regex, value):
            field.throw_error(error, value=value)

# --------------------------------------------------------------------------- #
# DataFrame                                                                   #
# --------------------------------------------------------------------------- #

def _cast_dataframe(value, field):
    if isinstance(value, pd.DataFrame) or not isinstance(value, (list, Mapping)):
        return value
    try:
        return pd.DataFrame(value)
    except (ValueError, TypeError):
        return value


def _validate_dataframe(value, field):
    if not isinstance(value, pd.DataFrame):
        field.throw_error(field.settings["type_error"], value=value)

# --------------------------------------------------------------------------- #
# Built-ins                                                                   #
# --------------------------------------------------------------------------- #

register("Array", Transformer(
    settings={"type_error": "Invalid array"},
    validate=_validate_array,
    parse=_parse_array,
), aliases=(list,))

register("BigInt", Transformer(
    settings={"type_error": "Invalid bigint", "auto_cast": False},
    cast=_cast_bigint,
    validate=_validate_bigint,
), aliases=(int,))

register("Boolean", Transformer(
    settings={"type_error": "Invalid boolean", "auto_cast": False},
    cast=_cast_boolean,
    validate=_validate_boolean,
), aliases=(bool,))

register("Date", Transformer(
    settings={"type_error": "Invalid date", "auto_cast": True},
    cast=_cast_date,
    validate=_validate_date,
), aliases=(_dt.datetime,))

register("Function", Transformer(
    settings={"type_error": "Invalid function"},
    validate=_validate_function,
))

register("Number", Transformer(
    settings={"type_error": "Invalid number", "auto_cast": False},
    cast=_cast_number,
    validate=_validate_number,
), aliases=(float,))

register("Object", Transformer(
    settings={"type_error": "Invalid object"},
    validate=_validate_object,
), aliases=(dict,))

register("Promise", Transformer(
    settings={"type_error": "Invalid Promise", "auto_cast": False},
    cast=_cast_promise,
    validate=_validate_promise,
), aliases=(Future,))

register("Set", Transformer(
    settings={"type_error": "Invalid set", "auto_cast": True},
    cast=_cast_set,
    validate=_validate_set,
), aliases=(set,))

register("String", Transformer(
    settings={
        "type_error": "Invalid string",
        "enum_error": "Unknown enum option { value }",
        "enum": [],
        "auto_cast": False,
    },
    cast=_cast_string,
    validate=_validate_string,
), aliases=(str,))

register("DataFrame", Transformer(
    settings={"type_error": "Invalid DataFrame", "auto_cast": True},
    cast=_cast_dataframe,
    validate=_validate_dataframe,
), aliases=(pd.DataFrame,))
