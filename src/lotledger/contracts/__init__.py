"""
JSON Schema contracts.

The documents under lotledger.contracts.schemas define the event wire format
(envelope.v1.json, settlement/*.v1.json) and the ledger snapshot file format
(ledger/snapshot.v1.json). Events validate against them on construction,
snapshots on load.
"""

import json
from functools import lru_cache
from importlib import resources

from jsonschema import Draft202012Validator, FormatChecker

SCHEMA_PACKAGE = "lotledger.contracts.schemas"


@lru_cache(maxsize=32)
def load_and_compile_schema(schema_name: str) -> Draft202012Validator:
    """
    Compiled validator for a schema path relative to SCHEMA_PACKAGE.

    Read through importlib.resources so installed wheels work too. Validators
    are cached per name, and format checking (dates, date-times) is on.

    Raises:
        FileNotFoundError: No schema of that name ships with the package
    """
    source = resources.files(SCHEMA_PACKAGE) / schema_name
    if not source.is_file():
        raise FileNotFoundError(f"Schema not found: {schema_name} in package {SCHEMA_PACKAGE}")
    document = json.loads(source.read_text(encoding="utf-8"))
    Draft202012Validator.check_schema(document)
    return Draft202012Validator(document, format_checker=FormatChecker())


__all__ = ["SCHEMA_PACKAGE", "load_and_compile_schema"]
