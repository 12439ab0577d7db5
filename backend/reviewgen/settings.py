from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = REPO_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore"
    )

    # whether to expose the debug catalog endpoint and console logs
    DEBUG: bool = False

    # CORS allow origins (comma-separated). Default empty (no cross-origin).
    CORS_ALLOW_ORIGINS: str = ""

    # Review generation
    OPENAI_API_KEY: str | None = None
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    OPENAI_TIMEOUT_SECONDS: float = 20.0
    OPENAI_CONNECT_TIMEOUT_SECONDS: float = 5.0
    REVIEW_GPT_MODEL: str = "gpt-4o-mini"
    REVIEW_STYLE_TEMPERATURES: str = "short=0.6,casual=0.8,detailed=0.9"
    REVIEW_STYLE_MAX_TOKENS: str = "short=120,casual=300,detailed=500"
    REVIEW_BASE_LANGUAGE: str = "ja"
    # output characters -> tokens when the provider reports no usage
    REVIEW_FALLBACK_TOKEN_MULTIPLIER: float = 1.5
    REVIEW_COST_PER_1K_TOKENS: Decimal = Decimal("0.0006")

    # Usage logging webhook (e.g. an Apps Script endpoint appending to a sheet)
    USAGE_WEBHOOK_URL: str | None = None
    USAGE_SINK_TIMEOUT_SECONDS: float = 5.0
    USAGE_TIMEZONE: str = "Asia/Tokyo"

    # Store / tag spreadsheet
    SPREADSHEET_ID: str = ""
    STORES_SHEET_GID: str = "0"
    CATEGORY_TAGS_SHEET_GID: str = ""
    # Published CSV URLs take precedence over the id/gid pair
    SHEET_STORES_CSV_URL: str | None = None
    SHEET_TAGS_CSV_URL: str | None = None
    CATALOG_CACHE_TTL_SECONDS: int = 300

    # Observability
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_RELEASE: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2

    @property
    def allow_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if s == "*":
            return ["*"]
        if s == "":
            return []
        return [part.strip() for part in s.split(",") if part.strip()]

    @property
    def style_parameters(self) -> StyleParameters:
        return StyleParameters.from_strings(
            self.REVIEW_STYLE_TEMPERATURES, self.REVIEW_STYLE_MAX_TOKENS
        )

    @property
    def stores_csv_url(self) -> str | None:
        if self.SHEET_STORES_CSV_URL:
            return self.SHEET_STORES_CSV_URL
        if not self.SPREADSHEET_ID:
            return None
        return _sheet_csv_url(self.SPREADSHEET_ID, self.STORES_SHEET_GID)

    @property
    def tags_csv_url(self) -> str | None:
        if self.SHEET_TAGS_CSV_URL:
            return self.SHEET_TAGS_CSV_URL
        if not self.SPREADSHEET_ID or not self.CATEGORY_TAGS_SHEET_GID:
            return None
        return _sheet_csv_url(self.SPREADSHEET_ID, self.CATEGORY_TAGS_SHEET_GID)


def _sheet_csv_url(spreadsheet_id: str, gid: str) -> str:
    return (
        f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export?format=csv&gid={gid}"
    )


def _parse_pairs(payload: str | None) -> dict[str, str]:
    mapping: dict[str, str] = {}
    if not payload:
        return mapping
    for part in payload.split(","):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        mapping[key.strip().lower()] = value.strip()
    return mapping


@dataclass(slots=True, frozen=True)
class StyleParameters:
    """Per-style temperature and output-token cap.

    Longer styles get more sampling freedom; the short style is kept tight.
    """

    temperatures: dict[str, float]
    max_tokens: dict[str, int]

    @classmethod
    def defaults(cls) -> StyleParameters:
        return cls(
            temperatures={"short": 0.6, "casual": 0.8, "detailed": 0.9},
            max_tokens={"short": 120, "casual": 300, "detailed": 500},
        )

    @classmethod
    def from_strings(
        cls, temperatures: str | None, max_tokens: str | None
    ) -> StyleParameters:
        base = cls.defaults()
        temps = dict(base.temperatures)
        caps = dict(base.max_tokens)
        for key, value in _parse_pairs(temperatures).items():
            if key not in temps:
                continue
            try:
                temps[key] = float(value)
            except ValueError:
                continue
        for key, value in _parse_pairs(max_tokens).items():
            if key not in caps:
                continue
            try:
                caps[key] = int(value)
            except ValueError:
                continue
        return cls(temperatures=temps, max_tokens=caps)

    def temperature_for(self, style: str) -> float:
        return self.temperatures[style]

    def max_tokens_for(self, style: str) -> int:
        return self.max_tokens[style]


settings = Settings()
