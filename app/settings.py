import json
from dataclasses import dataclass
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CompanyIdentity:
    name: str
    address_lines: tuple[str, ...]
    registration: str
    vat_number: str


@dataclass(frozen=True)
class BankingDetails:
    owner: str
    account_number: str
    account_type: str
    bank_name: str
    branch_code: str


class Settings(BaseSettings):
    app_name: str = "kayak-ops-console"
    app_env: Literal["dev", "prod"] = Field("prod", env="APP_ENV")
    testing: bool = Field(False, env="TESTING")
    cors_origins_raw: str | None = Field(None, env="CORS_ORIGINS", validation_alias="cors_origins")
    backend_url: str | None = Field(None, env="BACKEND_URL")
    backend_api_key: str | None = Field(None, env="BACKEND_API_KEY")
    backend_timeout_seconds: float = Field(10.0, env="BACKEND_TIMEOUT_SECONDS")
    business_timezone: str = Field("Africa/Johannesburg", env="BUSINESS_TIMEZONE")
    currency_code: str = Field("ZAR", env="CURRENCY_CODE")
    tax_rate: float = Field(0.15, env="TAX_RATE")
    money_group_separator: str = Field(" ", env="MONEY_GROUP_SEPARATOR")
    money_decimal_separator: str = Field(".", env="MONEY_DECIMAL_SEPARATOR")
    company_name: str = Field("Cape Kayak Adventures", env="COMPANY_NAME")
    company_address_raw: str = Field(
        "179 Beach Road Three Anchor Bay,Cape Town,8005",
        env="COMPANY_ADDRESS",
        validation_alias="company_address",
    )
    company_registration: str = Field("Reg. 1995/051404/23", env="COMPANY_REGISTRATION")
    company_vat_number: str = Field("4290176926", env="COMPANY_VAT_NUMBER")
    bank_account_owner: str = Field("Cape Kayak Adventures", env="BANK_ACCOUNT_OWNER")
    bank_account_number: str = Field("070631824", env="BANK_ACCOUNT_NUMBER")
    bank_account_type: str = Field("Current / Cheque", env="BANK_ACCOUNT_TYPE")
    bank_name: str = Field("Standard Bank", env="BANK_NAME")
    bank_branch_code: str = Field("020909", env="BANK_BRANCH_CODE")
    admin_username: str = Field("admin", env="ADMIN_USERNAME")
    admin_password_sha256: str | None = Field(None, env="ADMIN_PASSWORD_SHA256")
    metrics_enabled: bool = Field(True, env="METRICS_ENABLED")
    metrics_token: str | None = Field(None, env="METRICS_TOKEN")

    model_config = SettingsConfigDict(env_file=".env", enable_decoding=False)

    @field_validator("cors_origins_raw", "company_address_raw", mode="before")
    @classmethod
    def normalize_list_raw(cls, value: object) -> str | None:
        return cls._normalize_raw_list(value)

    @field_validator("tax_rate")
    @classmethod
    def validate_tax_rate(cls, value: float) -> float:
        if value < 0 or value >= 1:
            raise ValueError("tax_rate must be between 0 and 1")
        return value

    @field_validator("business_timezone")
    @classmethod
    def validate_business_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value

    @field_validator("admin_password_sha256")
    @classmethod
    def normalize_password_hash(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip().lower()
        return stripped or None

    @property
    def cors_origins(self) -> list[str]:
        return self._parse_list(self.cors_origins_raw)

    @cors_origins.setter
    def cors_origins(self, value: list[str] | str | None) -> None:
        self.cors_origins_raw = self._normalize_raw_list(value)

    @property
    def company_address_lines(self) -> list[str]:
        return self._parse_list(self.company_address_raw)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    @property
    def company(self) -> CompanyIdentity:
        return CompanyIdentity(
            name=self.company_name,
            address_lines=tuple(self.company_address_lines),
            registration=self.company_registration,
            vat_number=self.company_vat_number,
        )

    @property
    def banking(self) -> BankingDetails:
        return BankingDetails(
            owner=self.bank_account_owner,
            account_number=self.bank_account_number,
            account_type=self.bank_account_type,
            bank_name=self.bank_name,
            branch_code=self.bank_branch_code,
        )

    @staticmethod
    def _normalize_raw_list(value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)):
            return json.dumps(list(value))
        return str(value)

    @staticmethod
    def _parse_list(raw: str | None) -> list[str]:
        if raw is None:
            return []
        stripped = raw.strip()
        if not stripped:
            return []
        if stripped.startswith("["):
            parsed = json.loads(stripped)
            if isinstance(parsed, list):
                return [str(entry).strip() for entry in parsed if str(entry).strip()]
            return [str(parsed).strip()] if str(parsed).strip() else []
        entries = [entry.strip() for entry in stripped.split(",")]
        return [entry for entry in entries if entry]


settings = Settings()
