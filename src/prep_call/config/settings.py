from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache

class Settings(BaseSettings):
    # Vocal Bridge (voice agent) Configuration
    VOCAL_BRIDGE_API_KEY: Optional[str] = None
    VOCAL_BRIDGE_TOKEN_URL: str = "https://vocalbridgeai.com/api/v1/token"
    TOKEN_TIMEOUT_SECONDS: float = 10.0
    TOKEN_MAX_RETRIES: int = 2
    TOKEN_RETRY_BACKOFF_SECONDS: float = 0.5

    # Real-time Session Configuration
    CREDENTIAL_TIMEOUT_SECONDS: float = 30.0
    SESSION_CONNECT_TIMEOUT_SECONDS: float = 15.0
    DATA_CHANNEL_TOPIC: str = "client_actions"

    # Audio Configuration
    SAMPLE_RATE: int = 48000
    CHANNELS: int = 1

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    API_PREFIX: str = "/api"
    API_URL: str = "http://localhost:8001/api"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    LOG_TO_FILE: bool = True

    # Data Storage
    DATA_DIR: str = "data"
    DATA_FILE: str = "data.json"
    # Serverless deployments only allow writes under the system temp dir
    USE_TEMP_DATA_DIR: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()
