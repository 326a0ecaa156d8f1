# test_honeypot.py
from formgate import honeypot


def test_no_decoys_filled():
    res = honeypot.check({"name": "Ada", "website": "", "url": None})
    assert res.trapped is False
    assert res.field is None


def test_website_trips_trap():
    res = honeypot.check({"name": "Ada", "website": "http://spam.example"})
    assert res.trapped is True
    assert res.field == "website"


def test_first_in_configured_order_wins():
    res = honeypot.check({"bot_field": "x", "url": "y"})
    assert res.field == "url"


def test_whitespace_only_is_empty():
    assert honeypot.check({"hp_field": "   "}).trapped is False


def test_custom_field_names():
    res = honeypot.check({"fax": "123", "website": "x"}, field_names=["fax"])
    assert res.field == "fax"
