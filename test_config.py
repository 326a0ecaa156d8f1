# test_config.py
import pytest

from formgate import config
from formgate.config import settings_from_env


def test_defaults():
    s = settings_from_env({})
    assert s.rate_limits().per_minute == 5
    assert s.rate_limits().per_hour == 20
    assert s.rate_limits().per_day == 100
    assert s.honeypot_fields[0] == "website"
    assert s.max_lengths["message"] == 5000
    assert s.port == 4567
    assert s.delivery_configured is False


def test_delivery_needs_key_and_addresses():
    env = {"RESEND_API_KEY": "re_x", "RESEND_FROM_EMAIL": "a@b.com"}
    assert settings_from_env(env).delivery_configured is False
    env["RESEND_TO_EMAIL"] = "c@d.com"
    assert settings_from_env(env).delivery_configured is True
    env["EMAIL_DELIVERY_ENABLED"] = "false"
    assert settings_from_env(env).delivery_configured is False


def test_lists_limits_and_lengths_from_env():
    s = settings_from_env({
        "RATE_LIMIT_PER_MINUTE": "2",
        "HONEYPOT_FIELDS": "fax, nickname",
        "SPAM_PHRASES": "crypto,airdrop",
        "FORM_REQUIRED_FIELDS": "email,message",
        "FORM_MAX_LENGTHS": '{"message": 1000, "company": 80}',
        "TRUST_PROXY_HEADERS": "1",
    })
    assert s.rate_limits().per_minute == 2
    assert s.honeypot_fields == ["fax", "nickname"]
    rules = s.validation_rules()
    assert rules.required_fields == ("email", "message")
    assert rules.max_lengths == {"name": 100, "email": 255, "message": 1000, "subject": 200, "company": 80}
    assert rules.spam_phrases == ("crypto", "airdrop")
    assert s.trust_proxy_headers is True


def test_empty_log_file_disables_audit_file():
    assert settings_from_env({"FORM_LOG_FILE": ""}).log_file is None
    assert settings_from_env({}).log_file == "form-submissions.log"


@pytest.mark.parametrize("env", [
    {"RATE_LIMIT_PER_MINUTE": "zero"},
    {"RATE_LIMIT_PER_HOUR": "0"},
    {"FORM_MAX_LENGTHS": "[1, 2]"},
])
def test_bad_values_raise(env):
    with pytest.raises(ValueError):
        settings_from_env(env)


def test_refresh_settings_rereads_env(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_PER_DAY", "7")
    assert config.refresh_settings().rate_limit_per_day == 7
    monkeypatch.delenv("RATE_LIMIT_PER_DAY")
    assert config.refresh_settings().rate_limit_per_day == 100


def test_max_lengths_override_keeps_other_defaults():
    rules = settings_from_env({"FORM_MAX_LENGTHS": '{"company": 80}'}).validation_rules()
    assert rules.max_lengths["company"] == 80
    assert rules.max_lengths["name"] == 100
    assert rules.max_lengths["message"] == 5000
