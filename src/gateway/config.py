"""Gateway configuration."""

from src.shared.config import BaseServiceSettings


class GatewaySettings(BaseServiceSettings):
    """Settings specific to the FastAPI Gateway."""

    service_name: str = "gateway"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]
    ensure_schema: bool = True

    class Config:
        env_prefix = "GATEWAY_"
