import pytest

from contact_indexer.mappers.text_heuristics import (
    canonicalize_phone,
    extract_address_from_text,
    extract_phone_numbers,
)


# --- Phones ---


def test_formatting_variants_collapse_to_one_canonical_number():
    text = "Call +1 (555) 123-4567, or 555.123.4567, or even 555-123-4567 today!"
    assert extract_phone_numbers(text) == ["+15551234567"]


def test_repeated_number_returned_once():
    text = "Sales: (555) 987-6543 | Support: (555) 987-6543"
    assert extract_phone_numbers(text) == ["+15559876543"]


def test_distinct_numbers_keep_discovery_order():
    text = "Main line 555 222 3333\nFax 555 444 5555"
    assert extract_phone_numbers(text) == ["+15552223333", "+15554445555"]


def test_short_digit_runs_discarded():
    assert extract_phone_numbers("Order 12345, call 123-4567") == []


def test_empty_text():
    assert extract_phone_numbers("") == []
    assert extract_phone_numbers(None) == []


@pytest.mark.parametrize(
    "text",
    [
        "Springfield, IL 62704\n555-123-4567",
        "Suite 200 555-123-4567",
        "Open 24/7 555-123-4567",
        "Springfield, IL 62704 555-123-4567",
    ],
)
def test_leading_digits_do_not_hide_phone(text):
    assert extract_phone_numbers(text) == ["+15551234567"]


def test_eleven_digit_number_with_trunk_prefix():
    assert extract_phone_numbers("Toll free 1-800-555-0199") == ["+18005550199"]


def test_canonicalize_international_number():
    assert canonicalize_phone("+44 20 7946 0958") == "+442079460958"


def test_canonicalize_uses_default_region():
    assert canonicalize_phone("(555) 123-4567") == "+15551234567"


def test_canonicalize_rejects_impossible_numbers():
    assert canonicalize_phone("12345") is None
    assert canonicalize_phone("not a phone") is None
    assert canonicalize_phone("   ") is None


# --- Addresses ---


def test_address_line_returned_trimmed():
    text = "Welcome to Acme\n   123 Main Street, Springfield, IL 62704   \nCall us any time"
    assert extract_address_from_text(text) == "123 Main Street, Springfield, IL 62704"


def test_first_matching_line_wins():
    text = "500 Oak Ave\n42 Elm Road"
    assert extract_address_from_text(text) == "500 Oak Ave"


def test_no_address_shaped_line_returns_none():
    text = "Welcome to our shop\nOpen daily 9-5\nCall 555 123 4567"
    assert extract_address_from_text(text) is None


def test_address_with_unit_and_abbreviated_suffix():
    text = "Find us at 77 Harbor Blvd. Suite 200"
    assert extract_address_from_text(text) == "Find us at 77 Harbor Blvd. Suite 200"


def test_address_from_empty_text():
    assert extract_address_from_text("") is None
    assert extract_address_from_text(None) is None
