"""
utils.py - shared, low-level helpers for the schema-validator package.

This module consolidates the pure helpers the engine leans on for:
- The ``UNDEFINED`` marker (a value that was never supplied)
- Dot-notation paths (flattening, lookup, sub-property selection)
- Structural checks (``properties_restricted``)
- Message templates (``render``)
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Sequence

__all__ = [
    "UNDEFINED",
    "cast_array",
    "cast_throwable",
    "find",
    "get_sub_properties",
    "obj2dot",
    "properties_restricted",
    "render",
]

# --------------------------------------------------------------------------- #
# Absent-value marker                                                         #
# --------------------------------------------------------------------------- #

class _Undefined:
    """Singleton standing for a value that was never supplied.

    ``None`` is a legitimate (null) value throughout the package, so a
    separate marker is needed to tell "missing" apart from "null".
    """

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, memo: dict) -> "_Undefined":
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()

# --------------------------------------------------------------------------- #
# Small casting helpers                                                       #
# --------------------------------------------------------------------------- #

def cast_array(value: Any) -> list:
    """Wrap *value* in a list unless it already is a list or tuple."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def cast_throwable(value: Any, error: str) -> tuple[Any, str]:
    """Split a setting into ``(value, message)``.

    Constraint settings such as ``minlength`` may be given either plainly
    (``3``) or as a pair carrying a custom message
    (``(3, "at least three characters")``).
    """
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return value, error

# --------------------------------------------------------------------------- #
# Dot-notation helpers                                                        #
# --------------------------------------------------------------------------- #

def obj2dot(obj: Mapping[str, Any], *, parent: str = "", separator: str = ".") -> list[str]:
    """Flatten the key tree of *obj* into dot-notation leaf paths.

    >>> obj2dot({"name": "Ann", "address": {"city": "Miami", "zip": 33129}})
    ['name', 'address.city', 'address.zip']

    Nested mappings are descended into; every other value (lists
    included) is a leaf.  An empty nested mapping contributes no path.
    """
    paths: list[str] = []
    for prop, value in obj.items():
        if isinstance(value, Mapping) and value:
            paths.extend(obj2dot(value, parent=f"{parent}{prop}{separator}", separator=separator))
        elif isinstance(value, Mapping):
            continue
        else:
            paths.append(f"{parent}{prop}")
    return paths


def find(obj: Any, path: str, default: Any = UNDEFINED) -> Any:
    """Return the value at dot-notation *path* inside *obj*.

    Mappings are looked up by key, anything else by attribute, so a
    template may reach into a schema node (``{ field.full_path }``).
    *default* is returned as soon as a segment cannot be resolved.
    """
    current = obj
    for segment in path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return default
            current = current[segment]
        elif current is None or current is UNDEFINED or segment.startswith("_"):
            return default
        else:
            try:
                current = getattr(current, segment)
            except AttributeError:
                return default
    return current


def get_sub_properties(properties: Iterable[str], parent: str) -> list[str]:
    """Return the paths under *parent*, relative to it."""
    prefix = f"{parent}."
    return [prop[len(prefix):] for prop in properties if prop.startswith(prefix)]


_PLACEHOLDER_RE = re.compile(r"\{\s*([A-Za-z_][\w.]*)\s*\}")


def render(template: str, obj: Mapping[str, Any]) -> str:
    """Interpolate ``{ dotted.path }`` placeholders in *template*.

    Placeholders that cannot be resolved against *obj* are left as-is.
    """

    def _sub(match: re.Match) -> str:
        value = find(obj, match.group(1))
        if value is UNDEFINED:
            return match.group(0)
        return str(value)

    return _PLACEHOLDER_RE.sub(_sub, str(template))

# --------------------------------------------------------------------------- #
# Structural checks                                                           #
# --------------------------------------------------------------------------- #

def properties_restricted(obj: Any, properties: Sequence[str], *, strict: bool = False) -> bool:
    """Return True iff the own properties of *obj* all appear in *properties*.

    Parameters
    ----------
    obj : Any
        The object to analyse.  Anything that is not a mapping fails.
    properties : Sequence[str]
        Allowed dot-notation paths.  A mapping-valued property is allowed
        as a whole when its name is listed; otherwise its own keys are
        checked against the listed ``<name>.<sub>`` paths.
    strict : bool, default False
        Additionally require every listed property to be present.

    Examples
    --------
    >>> user = {"name": "Ann", "address": {"city": "Miami", "zip": 33129}}
    >>> properties_restricted(user, ["name"])
    False
    >>> properties_restricted(user, ["name", "address"])
    True
    >>> properties_restricted(user, ["name", "address.city", "address.zip", "address.line1"])
    True
    >>> properties_restricted(user, ["name", "address.city", "address.zip", "address.line1"], strict=True)
    False
    """
    if not isinstance(obj, Mapping):
        return False

    if strict:
        for prop in properties:
            if "." in prop:
                head = prop.split(".", 1)[0]
                if not properties_restricted(obj.get(head), get_sub_properties(properties, head), strict=True):
                    return False
            elif prop not in obj:
                return False

    for key, value in obj.items():
        if isinstance(value, Mapping):
            children = get_sub_properties(properties, key)
            approved = key in properties and not children
            if not (approved or properties_restricted(value, children)):
                return False
        elif key not in properties:
            return False

    return True
