from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "Project Intake"
    debug: bool = False
    api_prefix: str = "/api/v1"

    # LLM (multi-provider: anthropic | openai | google)
    extraction_provider: str = "anthropic"
    extraction_model: str = ""  # auto-defaults per provider if empty
    extraction_max_tokens: int = 2048
    extraction_request_timeout_s: float = 120.0
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_ai_api_key: str = ""

    # Document intake
    extraction_min_text_length: int = 50
    extraction_max_file_size_mb: int = 10
    extraction_max_batch_files: int = 10

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
