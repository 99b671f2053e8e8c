"""
Tests for the article content fingerprint.
"""

import string

from autonews.services.fingerprint import content_fingerprint


def test_fingerprint_is_16_hex_chars():
    fp = content_fingerprint("Scientists published a new climate assessment.")
    assert len(fp) == 16
    assert set(fp) <= set(string.hexdigits.lower())


def test_fingerprint_is_stable():
    text = "Record heat expected across the region."
    assert content_fingerprint(text) == content_fingerprint(text)


def test_whitespace_reflow_shares_fingerprint():
    a = "Record heat\nexpected   across the region."
    b = "  Record heat expected across\tthe region.  "
    assert content_fingerprint(a) == content_fingerprint(b)


def test_different_text_differs():
    assert content_fingerprint("climate") != content_fingerprint("economy")


def test_empty_and_none_are_equal():
    assert content_fingerprint("") == content_fingerprint(None)
