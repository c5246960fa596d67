"""
schema.py - schema tree and the recursive parse engine
======================================================

A :class:`Schema` is one node of a validation tree.  Leaf nodes name a
registered transformer (or a union of them); nested nodes hold one child
per property of the mapping they were built from.

>>> user = Schema({
...     "name": str,
...     "age": {"type": float, "required": False},
...     "address": {"city": str, "zip": float},
... })
>>> user.parse({"name": "Ann", "address": {"city": "Miami", "zip": 33129}})
{'name': 'Ann', 'address': {'city': 'Miami', 'zip': 33129}}

``parse`` never stops at the first bad field: every field is attempted
and a single :class:`ValidationError` listing all of them is raised.

Ownership rule: a node belongs to exactly one tree.  Embedding an existing
schema somewhere else always goes through :meth:`Schema.clone`.
"""

from __future__ import annotations

import enum
import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from . import transformers
from .transformers import Transformer, resolve_type_name
from .utils import UNDEFINED, cast_array, cast_throwable, find, obj2dot, properties_restricted
from .validator import SchemaError, ValidationError

__all__ = [
    "DEFAULT_SETTINGS",
    "Resolution",
    "Schema",
    "SchemaKind",
    "classify",
    "merge_settings",
]

log = logging.getLogger(__name__)

DEFAULT_SETTINGS: Mapping[str, Any] = MappingProxyType({
    "required": True,
    "allow_null": False,
    "default": UNDEFINED,
})

# Settings a loader step does not inherit from its node.
_LOADER_DROPPED = ("loaders", "cast", "validate")

# --------------------------------------------------------------------------- #
# Description classification                                                  #
# --------------------------------------------------------------------------- #

class SchemaKind(enum.Enum):
    """The shapes a schema description can take."""

    TYPE = "type"            # str, float, "String", [str, float], ...
    SETTINGS = "settings"    # {"type": str, "minlength": 3, ...}
    NESTED = "nested"        # {"name": str, "address": {...}}
    REFERENCE = "reference"  # Schema(...) or {"type": Schema(...), ...}


def classify(description: Any) -> SchemaKind:
    """Return the :class:`SchemaKind` of *description*."""
    if isinstance(description, Schema):
        return SchemaKind.REFERENCE
    if isinstance(description, Mapping):
        if "type" not in description:
            return SchemaKind.NESTED
        if isinstance(description["type"], (Schema, Mapping)):
            return SchemaKind.REFERENCE
        return SchemaKind.SETTINGS
    if isinstance(description, (str, type, list, tuple)):
        return SchemaKind.TYPE
    raise SchemaError(f"Can't build a schema out of {description!r}")


def merge_settings(transformer_settings: Mapping[str, Any], user_settings: Mapping[str, Any]) -> Mapping[str, Any]:
    """Merge defaults < transformer settings < user settings into a read-only record."""
    merged = dict(DEFAULT_SETTINGS)
    merged.update(transformer_settings)
    merged.update(user_settings)
    return MappingProxyType(merged)


def _is_required(settings: Mapping[str, Any]) -> bool:
    return bool(cast_throwable(settings.get("required", True), "")[0])


def _split_reference(description: Any) -> tuple["Schema", dict]:
    if isinstance(description, Schema):
        return description, {}
    target = description["type"]
    extra = {k: v for k, v in description.items() if k != "type"}
    if not isinstance(target, Schema):
        target = Schema(target)
    return target, extra


def _normalize_loaders(loaders: Any) -> tuple[tuple[str, dict], ...]:
    if not loaders:
        return ()
    normalized = []
    for loader in cast_array(loaders):
        if isinstance(loader, Mapping):
            if "type" not in loader:
                raise SchemaError(f"Loader {loader!r} is missing its 'type'")
            name = resolve_type_name(loader["type"])
            overrides = {k: v for k, v in loader.items() if k != "type"}
        else:
            name, overrides = resolve_type_name(loader), {}
        if not isinstance(name, str):
            raise SchemaError(f"Loader type must be a single type, got {name!r}")
        normalized.append((name, overrides))
    return tuple(normalized)


def _call_default(fn: Callable, node: "Schema") -> Any:
    """Call a default factory, handing it *node* when it takes an argument."""
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return fn()
    positional = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    if any(p.kind in positional and p.default is p.empty for p in params):
        return fn(node)
    return fn()

# --------------------------------------------------------------------------- #
# Per-call resolution state                                                   #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Resolution:
    """The type a node is being resolved as, for the duration of one call.

    Transformers and settings hooks receive this as their *field*
    argument.  It lives on the call stack only, which is what makes a
    single schema safe to parse from several threads at once.
    """

    schema: "Schema"
    type_name: str
    settings: Mapping[str, Any]

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def full_path(self) -> str:
        return self.schema.full_path

    def throw_error(self, message: str, *, value: Any = UNDEFINED, errors: Optional[list] = None) -> None:
        raise ValidationError(message, value=value, field=self.schema, errors=errors)

# --------------------------------------------------------------------------- #
# Schema node                                                                 #
# --------------------------------------------------------------------------- #

class Schema:
    """One node of a validation tree.

    Parameters
    ----------
    description
        A type (``str``, ``"String"``, ``[str, float]``), a settings mapping
        (``{"type": str, "minlength": 3}``), a nested mapping of further
        descriptions, or an existing :class:`Schema` (which gets cloned).
    name : str, optional
        Property name of this node; ``""`` for an anonymous root.
    default_values : Mapping, optional
        Root-level fallback defaults, looked up by dot-notation path
        relative to the root when a field has no ``default`` of its own.
    parent : Schema, optional
        Owning node.  Set internally while building nested trees.
    cast, validate : callable, optional
        Whole-value hooks run once at the root after the tree resolved.
        Both are called as ``hook(value, schema)``.
    settings : Mapping, optional
        Settings overriding the ones found in *description*'s defaults.
    """

    def __init__(
        self,
        description: Any,
        *,
        name: Optional[str] = None,
        default_values: Optional[Mapping[str, Any]] = None,
        parent: Optional["Schema"] = None,
        cast: Optional[Callable] = None,
        validate: Optional[Callable] = None,
        settings: Optional[Mapping[str, Any]] = None,
    ):
        self.name = "" if name is None else str(name)
        self.parent = parent
        self._cast = cast
        self._validate = validate
        self._default_values = default_values
        self.children: list[Schema] = []

        kind = classify(description)
        user = dict(settings or {})

        if kind is SchemaKind.REFERENCE:
            source, extra = _split_reference(description)
            self._adopt(source, {**user, **extra})
        elif kind is SchemaKind.NESTED and description:
            self.type: Any = SchemaKind.NESTED
            self._user_settings = user
            self.children = [self.spawn(value, name=key) for key, value in description.items()]
        else:
            if kind is SchemaKind.SETTINGS:
                user["required"] = description.get("default", UNDEFINED) is UNDEFINED
                user.update((k, v) for k, v in description.items() if k != "type")
                indicator = description["type"]
            elif kind is SchemaKind.NESTED:
                indicator = "Object"  # an empty mapping describes any object
            else:
                indicator = description
            self.type = resolve_type_name(indicator)
            self._user_settings = user

        self._build_settings()

    # ----------------------------------------------------------------- build

    def _adopt(self, source: "Schema", extra: Mapping[str, Any]) -> None:
        self.type = list(source.type) if isinstance(source.type, list) else source.type
        user = dict(source._user_settings)
        user.update(extra)
        if "default" in extra and "required" not in extra:
            user["required"] = False
        self._user_settings = user
        if self._cast is None:
            self._cast = source._cast
        if self._validate is None:
            self._validate = source._validate
        if self._default_values is None:
            self._default_values = source._default_values
        self.children = [child.clone(parent=self) for child in source.children]

    def _build_settings(self) -> None:
        user = self._user_settings
        if self.is_nested:
            self._settings_by_type: dict[str, Mapping[str, Any]] = {}
            self._settings = merge_settings({}, user)
        else:
            names = cast_array(self.type)
            if not names:
                raise SchemaError(f"Property {self.full_path} declares an empty union type")
            self._settings_by_type = {
                n: merge_settings(self._transformer(n).settings, user) for n in names
            }
            self._settings = self._settings_by_type[names[0]]
            for loader_type, _ in _normalize_loaders(user.get("loaders")):
                self._transformer(loader_type)

        if user.get("default", UNDEFINED) is not UNDEFINED and _is_required(self._settings):
            raise SchemaError(
                f"Remove either the 'required' or the 'default' option for property {self.full_path}."
            )

    def _transformer(self, name: str) -> Transformer:
        transformer = transformers.get(name)
        if transformer is None:
            raise SchemaError(f"Don't know how to resolve {name} (property {self.full_path or '<root>'})")
        for loader_type, _ in _normalize_loaders(transformer.loaders):
            if transformers.get(loader_type) is None:
                raise SchemaError(f"Transformer {name} loads unknown type {loader_type}")
        return transformer

    def spawn(self, description: Any, *, name: str) -> "Schema":
        """Build a node named *name* owned by this one.

        Existing schemas (or ``{"type": schema, ...}`` references) are
        cloned rather than shared.  The new node is not added to
        :attr:`children`.
        """
        if classify(description) is SchemaKind.REFERENCE:
            source, extra = _split_reference(description)
            return source.clone(name=name, parent=self, settings=extra)
        return Schema(description, name=name, parent=self)

    def clone(
        self,
        *,
        name: Optional[str] = None,
        parent: Optional["Schema"] = None,
        settings: Optional[Mapping[str, Any]] = None,
        default_values: Optional[Mapping[str, Any]] = None,
        cast: Optional[Callable] = None,
        validate: Optional[Callable] = None,
    ) -> "Schema":
        """Return a deep copy of this node, re-parented under *parent*.

        Children are rebuilt and re-linked, and the copy gets its own
        settings record; *settings* are layered on top of this node's.
        *cast* and *validate* replace the root hooks when given.
        """
        return Schema(
            self,
            name=self.name if name is None else name,
            parent=parent,
            settings=settings,
            default_values=default_values,
            cast=self._cast if cast is None else cast,
            validate=self._validate if validate is None else validate,
        )

    # ---------------------------------------------------------- introspection

    @property
    def is_nested(self) -> bool:
        return bool(self.children)

    @property
    def settings(self) -> Mapping[str, Any]:
        """Merged settings (for a union type: those of its first candidate).

        Use :meth:`settings_for` for the record of another candidate.
        """
        return self._settings

    def settings_for(self, type_name: str) -> Mapping[str, Any]:
        """Merged settings this node uses when resolved as *type_name*."""
        if type_name in self._settings_by_type:
            return self._settings_by_type[type_name]
        return merge_settings(self._transformer(type_name).settings, self._user_settings)

    @property
    def root(self) -> "Schema":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def full_path(self) -> str:
        if self.parent is not None and self.parent.full_path:
            return f"{self.parent.full_path}.{self.name}"
        return self.name

    @property
    def own_paths(self) -> list[str]:
        return [child.name for child in self.children]

    @property
    def paths(self) -> list[str]:
        """Dot-notation paths of every leaf under (and including) this node."""
        if not self.is_nested:
            return [self.name]
        prefix = f"{self.name}." if self.name else ""
        return [f"{prefix}{path}" for child in self.children for path in child.paths]

    def _relative_paths(self) -> list[str]:
        return [path for child in self.children for path in child.paths]

    def _path_from_root(self) -> str:
        names = []
        node = self
        while node.parent is not None:
            names.append(node.name)
            node = node.parent
        return ".".join(reversed(names))

    def has_field(self, field_name: str) -> bool:
        return field_name in self.paths

    def schema_at_path(self, path_name: str) -> Optional["Schema"]:
        """Return the descendant at dot-notation *path_name*, or ``None``."""
        head, _, rest = path_name.partition(".")
        for child in self.children:
            if child.name == head:
                return child.schema_at_path(rest) if rest else child
        return None

    def __repr__(self) -> str:
        kind = "nested" if self.is_nested else self.type
        return f"Schema(name={self.full_path!r}, type={kind!r})"

    # ------------------------------------------------------------------ parse

    def parse(self, value: Any = UNDEFINED) -> Any:
        """Cast, validate and parse *value*; return the sanitised result.

        Raises
        ------
        ValidationError
            With one entry in ``errors`` per problem found.
        SchemaError
            When the schema refers to a type that is no longer registered.
        """
        value = self._resolve(value)
        if self.parent is None:
            value = self._run_hook(self._cast, value, self)
            self._run_hook(self._validate, value, self)
        return value

    def structure_validation(self, value: Any) -> None:
        """Raise a :class:`ValidationError` listing properties of *value* this node doesn't know."""
        if not self.is_nested or value is UNDEFINED or value is None:
            return
        if not isinstance(value, Mapping):
            raise ValidationError(
                "Invalid object schema",
                value=value,
                field=self,
                errors=[ValidationError("Invalid object", value=value, field=self)],
            )
        if properties_restricted(value, self.own_paths):
            return

        known = self._relative_paths()
        prefix = f"{self.full_path}." if self.full_path else ""
        unknown = [
            ValidationError(f"Unknown property {prefix}{path}", value=find(value, path), field=self)
            for path in obj2dot(value)
            if path not in known and not any(path.startswith(f"{k}.") for k in known)
        ]
        raise ValidationError("Invalid object schema", value=value, field=self, errors=unknown)

    def _resolve(self, value: Any) -> Any:
        if self.is_nested:
            return self._run_children(value)
        return self._parse_property(self.type, value, self._settings)

    def _run_children(self, value: Any) -> Any:
        settings = self._settings
        if value is UNDEFINED and not _is_required(settings):
            return UNDEFINED
        if value is None and settings["allow_null"]:
            return None

        errors: list[BaseException] = []
        try:
            self.structure_validation(value)
        except ValidationError as err:
            errors.extend(err.errors or [err])

        source = value if isinstance(value, Mapping) else {}
        result: dict[str, Any] = {}
        for child in self.children:
            try:
                parsed = child._resolve(source.get(child.name, UNDEFINED))
            except ValidationError as err:
                errors.extend(err.errors or [err])
            else:
                if parsed is not UNDEFINED:
                    result[child.name] = parsed

        if errors:
            log.debug("%s: %d error(s) collected", self.full_path or "<root>", len(errors))
            raise ValidationError("Data is not valid", value=value, field=self, errors=errors)
        return result

    def _default(self, settings: Mapping[str, Any]) -> Any:
        default = settings["default"]
        if default is UNDEFINED:
            default = find(self.root._default_values or {}, self._path_from_root())
        if callable(default):
            default = _call_default(default, self)
        return default

    def _parse_property(self, type_name: Any, value: Any, settings: Mapping[str, Any]) -> Any:
        if value is None and settings["allow_null"]:
            return value

        if value is UNDEFINED:
            value = self._default(settings)
            if value is UNDEFINED and isinstance(type_name, list):
                value = self._candidate_default(type_name)
            if value is UNDEFINED:
                required, message = cast_throwable(settings["required"], f"Property {self.full_path} is required")
                if not required:
                    return UNDEFINED
                raise ValidationError(message, value=value, field=self)
            if value is None and settings["allow_null"]:
                return value

        if isinstance(type_name, list):
            for candidate in type_name:
                try:
                    return self._parse_property(candidate, value, self.settings_for(candidate))
                except ValidationError as err:
                    log.debug("%s: not a %s (%s)", self.full_path or "<root>", candidate, err)
            raise ValidationError("Could not resolve given value type", value=value, field=self)

        transformer = self._transformer(type_name)
        field = Resolution(self, type_name, settings)

        loaders = _normalize_loaders(settings.get("loaders")) + _normalize_loaders(transformer.loaders)
        for loader_type, overrides in loaders:
            value = self._parse_property(loader_type, value, self._loader_settings(loader_type, overrides))

        value = self._run_hook(settings.get("cast"), value, field)
        if settings.get("auto_cast") and transformer.cast is not None:
            value = transformer.cast(value, field)

        if transformer.validate is not None:
            transformer.validate(value, field)
        self._run_hook(settings.get("validate"), value, field)

        if transformer.parse is not None:
            value = transformer.parse(value, field)
        return value

    def _candidate_default(self, type_names: list) -> Any:
        # later candidates may bring a default of their own
        for candidate in type_names[1:]:
            default = self.settings_for(candidate)["default"]
            if default is not UNDEFINED:
                return _call_default(default, self) if callable(default) else default
        return UNDEFINED

    def _loader_settings(self, type_name: str, overrides: Mapping[str, Any]) -> Mapping[str, Any]:
        user = {k: v for k, v in self._user_settings.items() if k not in _LOADER_DROPPED}
        user.update(overrides)
        return merge_settings(self._transformer(type_name).settings, user)

    def _run_hook(self, hook: Optional[Callable], value: Any, field: Any) -> Any:
        if hook is None:
            return value
        try:
            return hook(value, field)
        except ValueError as exc:
            if isinstance(exc, (SchemaError, ValidationError)):
                raise
            raise ValidationError(str(exc), value=value, field=self) from exc
