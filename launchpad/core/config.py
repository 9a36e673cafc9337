from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    project_name: str = "launchpad-auth"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./launchpad.db"

    # Session tokens
    jwt_secret: str
    jwt_alg: str = "HS256"
    session_ttl_seconds: int = 60 * 60 * 24  # 24 hours

    # Login nonces
    nonce_ttl_seconds: int = 300
    nonce_backend: str = "memory"  # memory | redis
    redis_url: str = "redis://localhost:6379/0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8080

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]


def get_settings() -> Settings:
    return Settings()
