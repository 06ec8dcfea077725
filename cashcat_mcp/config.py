from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    # App
    APP_NAME: str = "CashCat MCP Gateway"
    DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Downstream REST API (defaults to the inbound request's own origin)
    API_BASE_URL: str = ""
    DOWNSTREAM_TIMEOUT_SECONDS: float = 30.0
    TOOL_CALL_TIMEOUT_SECONDS: float = 120.0

    # Security
    AUTH_MODE: str = "api_key"  # "api_key" or "jwt"
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    API_KEYS_TABLE: str = "api_keys"
    KEY_VERIFY_TIMEOUT_SECONDS: float = 10.0

    JWT_SECRET_KEY: str = "change_me_in_production_please_super_secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_ALLOWED_ALGORITHMS: str = "HS256"
    JWT_CLOCK_SKEW_SECONDS: int = 60
    JWT_USER_ID_CLAIM: str = "sub"
    JWT_ISSUER: str = ""
    JWT_AUDIENCE: str = ""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

@lru_cache()
def get_settings() -> Settings:
    return Settings()
