from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Restaurant Ordering"
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/restaurant"
    log_level: str = "INFO"

    # Populate a demo menu on startup when the catalog is empty
    seed_menu: bool = True

    # Observability (tracing is disabled when no endpoint is configured)
    otlp_endpoint: str | None = None

    model_config = {"env_file": ".env"}


settings = Settings()
