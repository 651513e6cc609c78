import hashlib
from datetime import datetime, timedelta
from uuid import UUID

from policyflow.policies.signature import compute_signature, verify_signature

USER_ID = UUID("11111111-1111-1111-1111-111111111111")
VERSION_ID = UUID("22222222-2222-2222-2222-222222222222")
TIMESTAMP = datetime(2026, 3, 14, 9, 26, 53, 589793)


def test_signature_is_sha256_of_user_version_and_timestamp():
    expected = hashlib.sha256(
        b"11111111-1111-1111-1111-111111111111"
        b"22222222-2222-2222-2222-222222222222"
        b"2026-03-14T09:26:53.589793"
    ).hexdigest()
    assert compute_signature(USER_ID, VERSION_ID, TIMESTAMP) == expected


def test_signature_is_lowercase_hex_of_fixed_length():
    signature = compute_signature(USER_ID, VERSION_ID, TIMESTAMP)
    assert len(signature) == 64
    assert signature == signature.lower()
    int(signature, 16)


def test_verify_detects_tampering():
    signature = compute_signature(USER_ID, VERSION_ID, TIMESTAMP)
    assert verify_signature(USER_ID, VERSION_ID, TIMESTAMP, signature)
    assert not verify_signature(VERSION_ID, VERSION_ID, TIMESTAMP, signature)
    assert not verify_signature(USER_ID, USER_ID, TIMESTAMP, signature)
    assert not verify_signature(USER_ID, VERSION_ID, TIMESTAMP + timedelta(seconds=1), signature)
