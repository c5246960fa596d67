"""
schema_validator – schema-driven validation, casting and sanitisation.
"""
import logging

from . import utils
from . import transformers
from .schema import Resolution, Schema, SchemaKind, classify
from .transformers import Transformer, register, unregister
from .utils import UNDEFINED
from .validator import SchemaError, ValidationError, validate

logging.getLogger(__name__).addHandler(logging.NullHandler())

Utils = utils
Transformers = transformers.TRANSFORMERS

__all__ = [
    "Resolution",
    "Schema",
    "SchemaError",
    "SchemaKind",
    "Transformer",
    "Transformers",
    "UNDEFINED",
    "Utils",
    "ValidationError",
    "classify",
    "register",
    "unregister",
    "utils",
    "validate",
]
