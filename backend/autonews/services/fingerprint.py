"""Fast content fingerprint for article deduplication.

The fingerprint is a 64-bit BLAKE2b digest of the normalized article body,
hex encoded to 16 characters. It is a dedup hint only: collisions are
tolerated (the first collision is expected after about 2**32 distinct
bodies) and it must not be used for integrity or security checks.
"""

import hashlib

FINGERPRINT_BYTES = 8


def content_fingerprint(text: str) -> str:
    """Return the 16-char hex fingerprint of text.

    Whitespace runs are collapsed first so reflowed copies of the same article
    share a fingerprint.
    """
    normalized = " ".join((text or "").split())
    digest = hashlib.blake2b(normalized.encode("utf-8"), digest_size=FINGERPRINT_BYTES)
    return digest.hexdigest()
