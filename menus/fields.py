"""Tagged values for the opaque per-item field payload.

Form widgets post every value as a string; nested values (link parameters,
data attributes) arrive JSON encoded. The decision between a plain string and
a structured document is made once, while deserializing the request, so the
tree code only ever copies the stored JSON around.
"""

import json
from dataclasses import dataclass
from typing import Any

STRUCTURAL_DELIMITERS = ('{', '[')


@dataclass(frozen=True)
class Scalar:
    value: Any

    is_structured = False


@dataclass(frozen=True)
class Structured:
    document: Any

    is_structured = True

    @property
    def value(self):
        return self.document


def decode_value(raw):
    """Tag a single submitted value"""
    if isinstance(raw, (dict, list)):
        return Structured(raw)
    if isinstance(raw, str) and raw.lstrip().startswith(STRUCTURAL_DELIMITERS):
        try:
            return Structured(json.loads(raw))
        except ValueError:
            # Looked structured but is just text, e.g. "{not json"
            return Scalar(raw)
    return Scalar(raw)


def decode_fields(raw_fields):
    return {key: decode_value(value) for key, value in (raw_fields or {}).items()}


def to_storage(tagged_fields):
    """Unwrap tagged values into the JSON-ready dict stored on the item"""
    return {key: tagged.value for key, tagged in tagged_fields.items()}
