from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    gemini_api_key: Optional[str] = None  # set it in the .env file
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_s: float = 60.0

    fetch_timeout_s: float = 8.0
    fetch_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    url_plain_text_chars: int = 5000
    short_text_warn_chars: int = 150

    max_upload_bytes: int = 10 * 1024 * 1024
    max_text_chars: int = 25000

    # False keeps malformed model records in the output (logged only)
    strict_record_validation: bool = False

    cors_origins: str = "*"
    frontend_dir: Optional[str] = None

    enable_otel: bool = False
    otel_service_name: str = "cardforge-api"

    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def model_configured(self) -> bool:
        return bool((self.gemini_api_key or "").strip())


settings = Settings()
