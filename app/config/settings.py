from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for system admin operations that bypass RLS

    # Supabase Storage
    storage_bucket: str = "announcement-images"
    max_image_size: int = 4 * 1024 * 1024  # bytes, matches the bucket file_size_limit
    allowed_image_types: str = "image/jpeg,image/jpg,image/png,image/gif,image/webp"

    # Groups / announcements
    group_code_length: int = 8
    default_page_size: int = 10
    max_page_size: int = 100

    # API client (used by app.client)
    api_base_url: str = "http://localhost:8000/api/v1"
    api_timeout: float = 10.0

    # App
    app_name: str = "bulletin-board"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_allowed_image_types(self) -> List[str]:
        return [t.strip() for t in self.allowed_image_types.split(",") if t.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
