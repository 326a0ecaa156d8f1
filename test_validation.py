# test_validation.py
import pytest

from formgate.validation import ValidationRules, is_valid_email, spam_warnings, validate


def _fields(**overrides):
    base = {"name": "Ada", "email": "a@b.com", "message": "0123456789"}
    base.update(overrides)
    return base


def test_minimal_valid_submission():
    res = validate(_fields())
    assert res.valid is True
    assert res.errors == []


def test_missing_name_and_bad_email_in_order():
    fields = _fields(email="not-an-email")
    del fields["name"]
    res = validate(fields)
    assert res.valid is False
    assert res.errors == ["Name is required", "Email format is invalid"]


def test_blank_required_fields_each_reported():
    res = validate({"name": "   ", "email": "", "message": None})
    assert res.errors == ["Name is required", "Email is required", "Message is required"]


def test_message_too_long_single_error():
    res = validate(_fields(message="x" * 5001))
    assert len(res.errors) == 1
    assert "Message" in res.errors[0] and "5000" in res.errors[0]


def test_message_at_limit_ok():
    assert validate(_fields(message="x" * 5000)).valid


def test_subject_checked_only_when_present():
    assert validate(_fields()).valid
    res = validate(_fields(subject="s" * 201))
    assert res.errors == ["Subject must be 200 characters or less"]


def test_errors_accumulate_across_rules():
    res = validate({"name": "n" * 101, "email": "bad", "message": ""})
    assert res.errors == [
        "Message is required",
        "Email format is invalid",
        "Name must be 100 characters or less",
    ]


@pytest.mark.parametrize("email", [
    "a@b.com",
    "first.last+tag@sub-domain.example.org",
    "under_score-dash@x.io",
])
def test_good_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", [
    "not-an-email",
    "a@@b.com",
    "a@b@c.com",
    ".a@b.com",
    "a.@b.com",
    "a..b@c.com",
    "a@b..com",
    "a@b.com.",
    "a@-b.com",
    "a@b.c0m",
    "a b@c.com",
    "a@b",
])
def test_bad_emails(email):
    assert not is_valid_email(email)


def test_long_email_reports_format_ok_but_length():
    email = "a" * 250 + "@b.com"
    res = validate(_fields(email=email))
    assert res.errors == ["Email must be 255 characters or less"]


def test_spam_warnings_never_block():
    msg = "CLICK HERE FOR FREE MONEY HTTP://A HTTP://B HTTPS://C HTTPS://D NOW!!!"
    res = validate(_fields(message=msg))
    assert res.valid
    assert len(res.warnings) == 3


def test_three_links_is_fine_four_is_not():
    assert spam_warnings("http://a http://b https://c") == []
    assert spam_warnings("http://a http://b https://c HTTPS://d") == ["Message contains excessive links"]


def test_uppercase_needs_more_than_fifty_chars():
    assert spam_warnings("A" * 50) == []
    assert spam_warnings("A" * 51) == ["Message is written entirely in uppercase"]


def test_only_first_phrase_reported():
    warnings = spam_warnings("Visit our casino and click here")
    assert warnings == ["Message contains suspicious phrase: 'click here'"]


def test_custom_rules():
    rules = ValidationRules(required_fields=("email",), max_lengths={"message": 5}, spam_phrases=("foo",))
    res = validate({"email": "a@b.com", "message": "foo bar"}, rules)
    assert res.errors == ["Message must be 5 characters or less"]
    assert res.warnings == ["Message contains suspicious phrase: 'foo'"]


@pytest.mark.parametrize("email", ["a@b.com\n", "a@b.com\r\n", "a@b.com "])
def test_trailing_whitespace_not_accepted(email):
    assert not is_valid_email(email)
    res = validate(_fields(email=email))
    assert res.errors == ["Email format is invalid"]
