"""
Shared-context blob attached to a session.

The blob is a versioned key-value map: string keys, JSON-serialisable
values, and a reserved `_version` key stamped on every write. Its hash is
SHA-256 over the canonical JSON encoding (sorted keys, compact separators),
so hashing a blob read back from storage reproduces the stored hash.
"""

import hashlib
import json
from typing import Any, Optional

from agent_orchestrator.domain.exceptions import ValidationError

VERSION_KEY = "_version"
CURRENT_VERSION = 1


def canonical_json(value: Any) -> str:
    """Encode value as canonical JSON (sorted keys, no whitespace)."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_shared_context(context: Optional[dict[str, Any]]) -> dict[str, Any]:
    """
    Validate a shared-context map and stamp the current version.

    Values are round-tripped through canonical JSON so that what gets
    stored is exactly what gets hashed (tuples become lists, etc).

    Raises:
        ValidationError: If a key is not a string or a value is not JSON-serialisable
    """
    context = dict(context or {})
    bad_keys = [key for key in context if not isinstance(key, str)]
    if bad_keys:
        raise ValidationError(
            "Shared context keys must be strings",
            details={"keys": [repr(key) for key in bad_keys]},
        )
    context[VERSION_KEY] = CURRENT_VERSION
    try:
        return json.loads(canonical_json(context))
    except (TypeError, ValueError) as e:
        raise ValidationError(
            "Shared context values must be JSON-serialisable",
            details={"error": str(e)},
        ) from e


def hash_shared_context(context: dict[str, Any]) -> str:
    """SHA-256 hex digest of the canonical encoding of a normalised context."""
    return sha256_hex(canonical_json(context))
