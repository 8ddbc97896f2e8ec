from pydantic_settings import BaseSettings


class ClientConfig(BaseSettings):
    """Settings for the numbering allocator and GSTIN lookups."""

    api_base_url: str = "http://localhost:8080/api/v1"
    api_token: str = ""  # Bearer token from /auth/login
    timeout: float = 30.0
    # When the duplicate check cannot be completed, treat the number as free
    duplicate_check_fail_open: bool = True
    gstin_api_key: str = ""
    gstin_api_url: str = "https://sheet.gstincheck.co.in"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "LORRYBOOK_CLIENT_",
        "extra": "ignore",
    }
