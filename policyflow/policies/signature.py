"""Signature hashes recorded with acknowledgements.

The hash binds the acknowledging user, the acknowledged version and the moment
of acknowledgement. It is an audit artifact: recomputing it from the stored
row reveals whether any of the three fields was altered afterwards.
"""
import hashlib
import hmac
from datetime import datetime
from uuid import UUID


def compute_signature(user_id: UUID, policy_version_id: UUID, timestamp: datetime) -> str:
    payload = f"{user_id}{policy_version_id}{timestamp.isoformat()}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def verify_signature(user_id: UUID, policy_version_id: UUID, timestamp: datetime, signature_hash: str) -> bool:
    expected = compute_signature(user_id, policy_version_id, timestamp)
    return hmac.compare_digest(expected, signature_hash)
