"""Environment-driven settings for the CAS host app (CAS_* variables or .env)."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import CAS1, StrategyOptions


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CAS_", env_file=".env", extra="ignore")

    version: str = CAS1
    sso_base_url: str = "https://cas.example.com/cas"
    server_base_url: Optional[str] = None
    validate_url: Optional[str] = None
    service_url: Optional[str] = None
    use_saml: bool = False
    timeout: float = 10.0

    def to_options(self) -> StrategyOptions:
        return StrategyOptions(**self.model_dump())


@lru_cache
def get_settings() -> Settings:
    return Settings()
