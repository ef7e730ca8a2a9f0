import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()  # loads .env for local dev

@dataclass(frozen=True)
class Settings:
    env: str = os.getenv("ENV", "local")
    service_name: str = os.getenv("SERVICE_NAME", "lapublica-pipeline")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Backend (system of record for quotes/invoices)
    backend_base_url: str = os.getenv("PIPELINE_API_BASE_URL", "http://127.0.0.1:3000/api")
    backend_api_token: str = os.getenv("PIPELINE_API_TOKEN", "")
    backend_timeout_seconds: float = float(os.getenv("PIPELINE_API_TIMEOUT_SECONDS", "15"))

    # Board
    pipeline_scope: str = os.getenv("PIPELINE_SCOPE", "")
    expiring_window_days: int = int(os.getenv("EXPIRING_WINDOW_DAYS", "7"))

settings = Settings()
