import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "3000"))
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Management System")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    environment: str = os.getenv("ENVIRONMENT", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Lending rules
    default_loan_days: int = int(os.getenv("DEFAULT_LOAN_DAYS", "14"))
    default_category: str = os.getenv("DEFAULT_CATEGORY", "General")

    # CLI client settings
    client_timeout: float = float(os.getenv("CLIENT_TIMEOUT", "10"))
    client_retries: int = int(os.getenv("CLIENT_RETRIES", "3"))

    @property
    def server_url(self) -> str:
        return os.getenv("LIBRARY_SERVER_URL", f"http://{self.api_host}:{self.api_port}")

    @property
    def allowed_origins(self) -> list:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
