import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # Application
    app_name: str = os.getenv("APP_NAME", "Lending Desk")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # API
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Lending policy
    # Reserve the title for the patron when a checkout finds no free copy
    auto_reserve: bool = os.getenv("AUTO_RESERVE", "True").lower() in ("true", "1", "yes")

    # Listing defaults
    default_recommendation_limit: int = int(os.getenv("DEFAULT_RECOMMENDATION_LIMIT", "3"))
    default_search_limit: int = int(os.getenv("DEFAULT_SEARCH_LIMIT", "10"))

    def __post_init__(self):
        # DEBUG overrides LOG_LEVEL
        if self.debug:
            self.log_level = "DEBUG"


settings = Settings()
