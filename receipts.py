"""
receipts.py - Run receipts for provtree

Summaries, ranking passes and the timestamp threshold search report what they
did as receipts: flat dicts stamped with a type, a UTC time, a tenant and a
hash of their payload. The library returns them; the CLI can append them to a
JSONL file with --receipts.

Payload hashes are dual: SHA256 and BLAKE3 hex digests joined by a colon.
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Dict, TextIO, Union

import blake3

__all__ = [
    "dual_hash",
    "emit_receipt",
    "write_receipt_jsonl",
    "StopRule",
    "RECEIPT_SCHEMA",
]

# =============================================================================
# CONSTANTS
# =============================================================================

# Fields every receipt carries next to its payload
RECEIPT_SCHEMA = {
    "receipt_type": "str",
    "ts": "ISO8601",
    "tenant_id": "str",
    "payload_hash": "str (SHA256:BLAKE3)",
}

DEFAULT_TENANT = "default"


# =============================================================================
# HASHING
# =============================================================================

def dual_hash(data: Union[bytes, str]) -> str:
    """
    Hash data with SHA256 and BLAKE3.

    Strings are UTF-8 encoded first. Also used for config hashes.

    Returns:
        str: "sha256_hex:blake3_hex"
    """
    if isinstance(data, str):
        data = data.encode()
    return f"{hashlib.sha256(data).hexdigest()}:{blake3.blake3(data).hexdigest()}"


# =============================================================================
# RECEIPTS
# =============================================================================

def emit_receipt(receipt_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Stamp a run payload.

    Args:
        receipt_type: "summary", "rank", "subrank" or "threshold_search_shortfall"
        data: Counters of the run, e.g. nodes, groups_created, elapsed_ms.
            A tenant_id key in the payload overrides DEFAULT_TENANT.

    Returns:
        dict: The header fields of RECEIPT_SCHEMA followed by the payload.
        The payload is hashed with sort_keys, so key order never changes it.
    """
    return {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat(),
        "tenant_id": data.get("tenant_id", DEFAULT_TENANT),
        "payload_hash": dual_hash(json.dumps(data, sort_keys=True, default=str)),
        **data,
    }


def write_receipt_jsonl(receipt: Dict[str, Any], fh: TextIO) -> None:
    """Append one receipt to an open text stream as a compact JSON line."""
    fh.write(json.dumps(receipt, separators=(",", ":"), default=str) + "\n")


# =============================================================================
# STOP RULE
# =============================================================================

class StopRule(Exception):
    """Base of errors that must stop a run outright and never become a job outcome."""
    pass
