"""Application configuration loaded from environment variables."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the booking workflow service.

    Args loaded from .env file and environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Cloud SQL
    cloud_sql_instance_connection: str = ""
    cloud_sql_password: str = ""
    cloud_sql_database: str = "booking_workflows_dev"
    cloud_sql_user: str = "postgres"
    cloud_sql_host: str = "127.0.0.1"
    cloud_sql_port: int = 5432
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Booking store: "postgres" for Cloud SQL, "memory" for local demos
    booking_store_backend: Literal["postgres", "memory"] = "postgres"

    # Activity log attribution
    booking_actor_name: str = "AI Booking Agent"
    booking_action_type: str = "voice_agent"
    booking_created_by: str = "ai_booking_agent"

    # Webhooks are called by the voice platform from arbitrary origins
    cors_allowed_origins: list[str] = ["*"]

    @property
    def database_url(self) -> str:
        """Build async Postgres connection URL.

        Uses Unix socket when cloud_sql_instance_connection is set
        (Cloud Run). Falls back to TCP host:port for local dev.
        """
        return self._build_url("postgresql+asyncpg")

    def _build_url(self, scheme: str) -> str:
        credentials = f"{self.cloud_sql_user}:{self.cloud_sql_password}"
        if self.cloud_sql_instance_connection:
            socket_path = f"/cloudsql/{self.cloud_sql_instance_connection}"
            return f"{scheme}://{credentials}@/{self.cloud_sql_database}?host={socket_path}"
        return (
            f"{scheme}://{credentials}"
            f"@{self.cloud_sql_host}:{self.cloud_sql_port}"
            f"/{self.cloud_sql_database}"
        )


def get_settings() -> Settings:
    """Return a Settings instance.

    Returns:
        Application settings loaded from env.
    """
    return Settings()
