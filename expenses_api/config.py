import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


@dataclass
class Settings:
    database_url: str
    log_level: str
    seed_demo_data: bool
    demo_api_token: str


def _flag(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./expenses.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        seed_demo_data=_flag(os.getenv("SEED_DEMO_DATA", "1")),
        demo_api_token=os.getenv("DEMO_API_TOKEN", "demo-token"),
    )
