from pydantic_settings import BaseSettings
from typing import List, Optional


PLACEHOLDER_URL = "https://placeholder.supabase.co"
PLACEHOLDER_ANON_KEY = (
    "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9."
    "eyJpc3MiOiJzdXBhYmFzZSIsInJlZiI6InBsYWNlaG9sZGVyIiwicm9sZSI6ImFub24ifQ.placeholder"
)


class Settings(BaseSettings):
    APP_NAME: str = "EcoTrack"
    DATABASE_URL: str  # platform Postgres connection string
    LOG_LEVEL: str = "INFO"

    # Hosted backend platform (auth + object storage REST endpoints)
    SUPABASE_URL: str = PLACEHOLDER_URL
    SUPABASE_ANON_KEY: str = PLACEHOLDER_ANON_KEY
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    SUPABASE_JWT_SECRET: Optional[str] = None  # verify access tokens locally when set
    ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"
    PLATFORM_TIMEOUT_SECONDS: float = 10.0

    POSTS_BUCKET: str = "posts"
    PROFILES_BUCKET: str = "profiles"

    EVENT_RETENTION_HOURS: int = 24
    EVENT_SWEEP_INTERVAL_SECONDS: int = 3600
    EVENT_SWEEP_ENABLED: bool = True

    # Wipes every table; keep off outside of demo deployments
    ALLOW_APP_RESET: bool = False

    # CORS: default allow local frontends (can be overridden via .env)
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    class Config:
        env_file = ".env"  # Load environment variables from the .env file

    @property
    def platform_configured(self) -> bool:
        url = self.SUPABASE_URL
        return bool(
            url
            and self.SUPABASE_ANON_KEY
            and url != PLACEHOLDER_URL
            and "your_supabase_url_here" not in url
        )


settings = Settings()
