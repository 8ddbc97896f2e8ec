from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Server configuration loaded from environment variables."""

    database_url: str
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8080
    debug: bool = False
    cors_origins: list[str] = []
    admin_password: str  # Password for the bootstrap "admin" account

    model_config = {
        "env_file": [".env"],
        "env_prefix": "LORRYBOOK_",
        "extra": "ignore",
    }
