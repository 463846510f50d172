import pytest
from pydantic import ValidationError

from app.settings import Settings


@pytest.mark.parametrize(
    "env_value, expected",
    [
        (None, []),
        ("https://example.com", ["https://example.com"]),
        ("https://a.com, https://b.com", ["https://a.com", "https://b.com"]),
        ('["https://a.com","https://b.com"]', ["https://a.com", "https://b.com"]),
    ],
)
def test_cors_origins_env_parsing(monkeypatch, env_value, expected):
    if env_value is None:
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
    else:
        monkeypatch.setenv("CORS_ORIGINS", env_value)

    settings = Settings(_env_file=None)

    assert settings.cors_origins == expected


def test_company_address_env_parsing(monkeypatch):
    monkeypatch.setenv("COMPANY_ADDRESS", "1 Harbour Road, Hout Bay ,7806")

    settings = Settings(_env_file=None)

    assert settings.company.address_lines == ("1 Harbour Road", "Hout Bay", "7806")


def test_defaults_describe_the_business(monkeypatch):
    for name in ("BUSINESS_TIMEZONE", "TAX_RATE", "CURRENCY_CODE", "ADMIN_PASSWORD_SHA256"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.tz.key == "Africa/Johannesburg"
    assert settings.tax_rate == 0.15
    assert settings.currency_code == "ZAR"
    assert settings.admin_password_sha256 is None
    assert settings.banking.bank_name == "Standard Bank"


@pytest.mark.parametrize("name, value", [("TAX_RATE", "1.5"), ("TAX_RATE", "-0.1"), ("BUSINESS_TIMEZONE", "Mars/Olympus")])
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_password_hash_is_normalized(monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD_SHA256", "  ABCDEF  ")

    assert Settings(_env_file=None).admin_password_sha256 == "abcdef"
