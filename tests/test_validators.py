"""Tests for the checksum validators and the structured regex layer."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from pii_roundtrip.validators import (
    VALIDATORS, is_valid_abn, is_valid_medicare, is_valid_tfn, luhn_valid,
)
from pii_roundtrip.patterns import scan_regex
from pii_roundtrip.reconcile import reconcile


# ── Validators ───────────────────────────────────────────────────────

def test_abn_valid():
    assert is_valid_abn("83 914 571 673")
    assert is_valid_abn("83914571673")


def test_abn_invalid():
    assert not is_valid_abn("12 345 678 901")
    assert not is_valid_abn("8391457167")      # 10 digits
    assert not is_valid_abn("83 914 571 67a")


def test_tfn_nine_digits():
    assert is_valid_tfn("123 456 782")
    assert not is_valid_tfn("123 456 789")


def test_tfn_eight_digits():
    assert is_valid_tfn("12345679")
    assert not is_valid_tfn("12345678")


def test_medicare():
    assert is_valid_medicare("2123 45670 1")
    assert is_valid_medicare("21234567011")    # 11 digits (with IRN)
    assert not is_valid_medicare("2123 45671 1")


def test_luhn():
    assert luhn_valid("4111 1111 1111 1111")
    assert not luhn_valid("4111 1111 1111 1112")
    assert not luhn_valid("4111 1111 11")      # too short


@pytest.mark.parametrize("raw", ["", "   ", "abc", None, "１２３４５６７８９"])
def test_validators_never_raise(raw):
    for check in VALIDATORS.values():
        assert check(raw) is False


# ── Regex layer ──────────────────────────────────────────────────────

def test_scan_abn_and_tfn():
    text = "Client ABN is 83 914 571 673 and TFN 123 456 782."
    found = scan_regex(text)
    assert [(e.label, e.text) for e in found] == [
        ("ABN", "83 914 571 673"),
        ("TFN", "123 456 782"),
    ]
    for e in found:
        assert text[e.start:e.end] == e.text
        assert e.source.value == "regex"
        assert e.score is None


def test_scan_drops_failed_checksum():
    found = scan_regex("ABN 12 345 678 901")
    assert not [e for e in found if e.label == "ABN"]


def test_scan_medicare():
    found = scan_regex("Medicare card 2123 45670 1 expires")
    assert [e.text for e in found if e.label == "MEDICARE"] == ["2123 45670 1"]


def test_scan_credit_card_requires_luhn():
    assert [e.label for e in scan_regex("Card: 4111 1111 1111 1111")] == ["CREDIT_CARD"]
    assert not [e for e in scan_regex("Card: 4111 1111 1111 1112") if e.label == "CREDIT_CARD"]


def test_scan_email_and_phone():
    found = scan_regex("Email jo.bloggs@example.com.au or call 0412 345 678 today")
    assert ("EMAIL", "jo.bloggs@example.com.au") in [(e.label, e.text) for e in found]
    assert ("PHONE", "0412 345 678") in [(e.label, e.text) for e in found]


def test_scan_afsl_covers_number_only():
    text = "Licensed under AFSL 123456."
    found = [e for e in scan_regex(text) if e.label == "AFSL"]
    assert len(found) == 1
    assert found[0].text == "123456"
    assert text[found[0].start:found[0].end] == "123456"


def test_scan_authorised_representative():
    found = scan_regex("Authorised Representative Number: 1234567")
    assert [e.label for e in found if e.text == "1234567"] == ["AR"]


def test_scan_business_name():
    found = scan_regex("Paid to Harbour View Pty Ltd yesterday")
    assert ("ORG", "Harbour View Pty Ltd") in [(e.label, e.text) for e in found]


def test_no_structured_pii_in_clean_text():
    assert scan_regex("The weather is nice today in Melbourne") == []


# ── End-to-end ───────────────────────────────────────────────────────

def test_abn_tfn_scenario_reconciles_to_two_entities():
    text = "Client ABN is 83 914 571 673 and TFN 123 456 782."
    entities = reconcile(scan_regex(text), text)
    assert sorted(e.label for e in entities) == ["ABN", "TFN"]
    abn, tfn = entities
    assert is_valid_abn(abn.text) and is_valid_tfn(tfn.text)
    assert abn.end <= tfn.start
