from fastapi import Request
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(..., env="DATABASE_URL")

    # Session tokens
    jwt_secret_key: str = Field(..., env="JWT_SECRET_KEY")
    token_expire_seconds: int = Field(default=3600, env="TOKEN_EXPIRE_SECONDS")

    # Built-in administrator (lives in configuration, never in the users table)
    admin_email: str = Field(default="", env="ADMIN_EMAIL")
    admin_password: str = Field(default="", env="ADMIN_PASSWORD")
    admin_name: str = Field(default="System Administrator", env="ADMIN_NAME")
    admin_wallet_address: str = Field(default="", env="ADMIN_WALLET_ADDRESS")

    # File uploads
    upload_dir: str = Field(default="/app/uploads", env="UPLOAD_DIR")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, env="MAX_UPLOAD_BYTES")

    # Frontend
    cors_origins: list[str] = Field(default=["http://localhost:3000"], env="CORS_ORIGINS")

    # Ledger mirror (all three must be set for contract calls to happen)
    rpc_url: str = Field(default="", env="RPC_URL")
    private_key: str = Field(default="", env="PRIVATE_KEY")
    contract_address: str = Field(default="", env="CONTRACT_ADDRESS")

    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_email and self.admin_password)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with (see create_app)."""
    return request.app.state.settings
