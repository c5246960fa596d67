"""
validator.py - error model and one-shot validation entry point
==============================================================

Public API
----------
SchemaError
    Raised for schema *authoring* problems (unknown type, conflicting
    ``required`` / ``default`` settings).  Never collected, never
    aggregated: it always aborts the operation that hit it.

ValidationError
    Raised by :meth:`schema_validator.Schema.parse` for *data* problems.
    Carries the offending ``value``, the originating ``field`` (a schema
    node) and, for nested values, the ordered list of sub-``errors``
    found in the same pass.

validate(value, *, schema, **options)
    Build (or reuse) a :class:`~schema_validator.schema.Schema` and parse
    *value* with it in one call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, Sequence

from .utils import UNDEFINED, render

if TYPE_CHECKING:  # pragma: no cover
    from .schema import Schema

__all__ = [
    "SchemaError",
    "ValidationError",
    "validate",
]

# --------------------------------------------------------------------------- #
# Exceptions                                                                  #
# --------------------------------------------------------------------------- #

class SchemaError(ValueError):
    """Raised when a schema description itself is invalid."""


class ValidationError(ValueError):
    """Raised when a value does not satisfy a schema.

    The message is a template rendered against ``{value, field, errors}``,
    so ``"Unknown enum option { value }"`` names the rejected option.
    """

    def __init__(
        self,
        message: str,
        *,
        value: Any = UNDEFINED,
        field: "Schema | None" = None,
        errors: Sequence[BaseException] | None = None,
    ):
        self.errors: list[BaseException] = list(errors or [])
        self.value = value
        self.field = field
        self.message = render(message, {"errors": self.errors, "value": value, "field": field})
        super().__init__(self.message)

    def flatten(self) -> Iterator[BaseException]:
        """Yield the leaf errors of this error, depth first."""
        if not self.errors:
            yield self
            return
        for err in self.errors:
            if isinstance(err, ValidationError):
                yield from err.flatten()
            else:
                yield err

    def __repr__(self) -> str:
        path = self.field.full_path if self.field is not None else ""
        return f"ValidationError({self.message!r}, field={path!r}, errors={len(self.errors)})"

# --------------------------------------------------------------------------- #
# One-shot helper                                                             #
# --------------------------------------------------------------------------- #

def validate(value: Any = UNDEFINED, *, schema: Any, **options: Any) -> Any:
    """Parse *value* against *schema* and return the sanitised result.

    *schema* may be a ready :class:`Schema` or any description accepted by
    its constructor, in which case *options* are forwarded to it.
    """
    from .schema import Schema

    if not isinstance(schema, Schema):
        schema = Schema(schema, **options)
    elif options:
        schema = schema.clone(**options)
    return schema.parse(value)
