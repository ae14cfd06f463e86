from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "graph-extractor"

    env: str = "development"

    STORAGE_BACKEND: str = "neo4j"

    NEO4J_URI: str = "neo4j://localhost:7687"
    NEO4J_USERNAME: str = "neo4j"
    NEO4J_PASSWORD: str = "password"
    NEO4J_DATABASE: str = "neo4j"
    NEO4J_CONNECTION_TIMEOUT: float = 60.0

    PARSE_WORKERS: int = 4
    MAX_FILE_SIZE_BYTES: int = 1024 * 1024
    RESOLVE_TYPES: bool = True

    LOG_LEVEL: str = "INFO"

    @field_validator("PARSE_WORKERS", "MAX_FILE_SIZE_BYTES")
    @classmethod
    def must_be_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @field_validator("STORAGE_BACKEND", "LOG_LEVEL")
    @classmethod
    def normalize_choice(cls, value: str) -> str:
        return value.strip()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
