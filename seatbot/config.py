import os
from pathlib import Path
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# Load .env from project root (parent of seatbot/)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

TARGET_URL = os.getenv(
    "TARGET_URL",
    "https://tkglobal.melon.com/performance/index.htm?langCd=EN&prodId=211217",
)
PROD_ID = os.getenv("PROD_ID", "211217")
TARGET_DATE = os.getenv("TARGET_DATE", "May 24")
LANG_CD = os.getenv("LANG_CD", "EN")
SEAT_KEYWORDS = [k.strip() for k in os.getenv("SEAT_KEYWORDS", "207,407,311,403").split(",") if k.strip()]

LOGIN_URL = os.getenv(
    "LOGIN_URL",
    "https://gmember.melon.com/login/login_form.htm?langCd=EN"
    "&redirectUrl=https://tkglobal.melon.com/main/index.htm?langCd=EN",
)
COOKIES_PATH = os.getenv("COOKIES_PATH", "melon_cookies.json")
ARTIFACTS_DIR = os.getenv("ARTIFACTS_DIR", "debug")

OCR_ENGINE = os.getenv("OCR_ENGINE", "tesseract")
TESSDATA_DIR = os.getenv("TESSDATA_DIR")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
MODEL_NAME = "gemini-3-flash-preview"

POPUP_URL_PART = "onestop.htm"
FRAME_NAME = "oneStopFrame"
PROD_TYPE_CODE = "PT0001"

# 0 means wait/retry forever
POPUP_TIMEOUT_SECONDS = float(os.getenv("POPUP_TIMEOUT_SECONDS", "0"))
MAX_ZONE_RETRIES = int(os.getenv("MAX_ZONE_RETRIES", "0"))


class SessionConfig(BaseModel):
    """Immutable inputs for one booking session."""

    model_config = ConfigDict(frozen=True)

    url: str
    prod_id: str
    target_date: str
    lang_cd: str = "EN"
    seat_keywords: tuple[str, ...]

    @field_validator("seat_keywords")
    @classmethod
    def _non_empty(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        v = tuple(k for k in v if k)
        if not v:
            raise ValueError("at least one seat keyword is required")
        return v

    @property
    def primary_keyword(self) -> str:
        return self.seat_keywords[0]

    @property
    def fallback_pool(self) -> tuple[str, ...]:
        return self.seat_keywords[1:]


def gemini_key_missing(engine: str = OCR_ENGINE, api_key: str | None = GEMINI_API_KEY) -> bool:
    return engine == "gemini" and not api_key


def session_config_from_env(**overrides) -> SessionConfig:
    """Build a SessionConfig from the environment, letting non-None overrides win."""
    values = {
        "url": TARGET_URL,
        "prod_id": PROD_ID,
        "target_date": TARGET_DATE,
        "lang_cd": LANG_CD,
        "seat_keywords": tuple(SEAT_KEYWORDS),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return SessionConfig(**values)
