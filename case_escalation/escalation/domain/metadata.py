"""
Case Metadata
=============

Typed view over the case metadata blob: one well-known optional field
(``escalation``) plus an extension map holding every other top-level key.

Merging is one level deep on purpose: the escalation record is replaced
wholesale and sibling keys are carried over untouched.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

ESCALATION_KEY = "escalation"

MetadataBlob = Union[Dict[str, Any], str, bytes, None]


def _decode_blob(blob: MetadataBlob) -> Dict[str, Any]:
    if blob is None:
        return {}
    if isinstance(blob, (str, bytes)):
        try:
            blob = json.loads(blob)
        except ValueError:
            return {}
    if not isinstance(blob, dict):
        return {}
    return blob


@dataclass
class CaseMetadata:
    """Case metadata with the escalation record split out from extensions."""
    escalation: Optional[Dict[str, Any]] = None
    extensions: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_blob(cls, blob: MetadataBlob) -> "CaseMetadata":
        data = _decode_blob(blob)
        extensions = {k: v for k, v in data.items() if k != ESCALATION_KEY}
        escalation = data.get(ESCALATION_KEY)
        return cls(
            escalation=escalation if isinstance(escalation, dict) else None,
            extensions=extensions,
        )

    def to_blob(self) -> Dict[str, Any]:
        blob = dict(self.extensions)
        if self.escalation is not None:
            blob[ESCALATION_KEY] = self.escalation
        return blob


def merge_escalation_metadata(existing: MetadataBlob, record: Any) -> Dict[str, Any]:
    """
    Merge an escalation record into an existing metadata blob.

    Args:
        existing: Current metadata as a dict, JSON text or None. Text that is
            not a JSON object is treated as an empty map.
        record: Escalation record (anything with ``to_dict()``, or a dict)

    Returns:
        New metadata dict: every existing top-level key except ``escalation``
        preserved as-is, ``escalation`` replaced by the new record.
    """
    record_dict = record.to_dict() if hasattr(record, "to_dict") else dict(record)
    merged = dict(_decode_blob(existing))
    merged[ESCALATION_KEY] = record_dict
    return merged
