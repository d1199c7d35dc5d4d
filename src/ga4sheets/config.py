from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()

_PREFIX = "GA4SHEETS_"


def _env(name: str, default: str) -> str:
    return os.getenv(_PREFIX + name, default)


@dataclass(frozen=True)
class Settings:
    api_name: str = "analyticsadmin"
    api_version: str = "v1alpha"
    request_timeout: float = 30.0
    rate_limit_delay: float = 5.0
    page_size: int = 200
    log_level: str = "INFO"
    report_tab_prefix: str = "Report"
    access_token: str = ""
    client_secrets: str = ""
    token_cache: str = ""


def get_settings() -> Settings:
    return Settings(
        api_name=_env("API_NAME", "analyticsadmin"),
        api_version=_env("API_VERSION", "v1alpha"),
        request_timeout=float(_env("REQUEST_TIMEOUT", "30")),
        rate_limit_delay=float(_env("RATE_LIMIT_DELAY", "5")),
        page_size=int(_env("PAGE_SIZE", "200")),
        log_level=_env("LOG_LEVEL", "INFO"),
        report_tab_prefix=_env("REPORT_TAB_PREFIX", "Report"),
        access_token=_env("ACCESS_TOKEN", ""),
        client_secrets=_env("CLIENT_SECRETS", ""),
        token_cache=_env("TOKEN_CACHE", ""),
    )
