"""
example.py - sanitising a sign-up payload with schema_validator
===============================================================

Walks through the main features:

1. **Nested schemas**: plain mappings become nested nodes
2. **Casting**: ``auto_cast`` turns loose input into the expected type
3. **Defaults**: literal, callable and root-level ``default_values``
4. **Union types**: first matching candidate wins
5. **Aggregated errors**: one ``parse`` call reports every problem

Run with ``python example.py``.
"""
from __future__ import annotations

import datetime as dt
import logging

from schema_validator import Schema, ValidationError

# --------------------------------------------------------------------------- #
# Logging Configuration                                                       #
# --------------------------------------------------------------------------- #
# DEBUG shows the union candidates the engine discards along the way.
logging.basicConfig(
    level="DEBUG",
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("schema_validator.examples")

# --------------------------------------------------------------------------- #
# Step 1: Describe the payload                                                #
# --------------------------------------------------------------------------- #

address = Schema({
    "city": str,
    "zip": {"type": float, "auto_cast": True},
})


def no_future_birthdays(value, field):
    if value > dt.datetime.now():
        raise ValueError("birthday can't be in the future")


signup = Schema(
    {
        "username": {"type": str, "minlength": 3, "regex": (r"^[a-z0-9_]+$", "lowercase letters, digits and _ only")},
        "birthday": {"type": dt.datetime, "validate": no_future_birthdays},
        "plan": {"type": str, "enum": ["free", "pro"], "default": "free"},
        "referrer": {"type": [str, int], "required": False},
        "tags": {"type": set, "default": set},
        "address": address,
    },
    default_values={"address": {"city": "Miami"}},
)

log.info("Schema fields: %s", ", ".join(signup.paths))

# --------------------------------------------------------------------------- #
# Step 2: A valid payload                                                     #
# --------------------------------------------------------------------------- #

clean = signup.parse({
    "username": "ann_92",
    "birthday": "1992-04-01",
    "referrer": 1042,
    "tags": ["beta", "beta", "newsletter"],
    "address": {"zip": "33129"},
})
log.info("Sanitised payload: %s", clean)

# --------------------------------------------------------------------------- #
# Step 3: An invalid payload - every problem in one go                        #
# --------------------------------------------------------------------------- #

try:
    signup.parse({
        "username": "Ann!",
        "birthday": "2100-01-01",
        "plan": "enterprise",
        "address": {"city": "Miami", "zip": "n/a", "country": "US"},
        "nickname": "annie",
    })
except ValidationError as err:
    log.error("%s (%d problems)", err, len(err.errors))
    for problem in err.errors:
        log.error("  %-16s %s", problem.field.full_path or "<root>", problem)
