from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("smart-expense-backend", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Vision / LLM service (OpenAI-compatible chat completions API)
    llm_base_url: str = Field("https://api.groq.com/openai/v1", alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(default=None, alias="LLM_API_KEY")
    llm_model: str = Field("meta-llama/llama-4-scout-17b-16e-instruct", alias="LLM_MODEL")
    llm_temperature: float = Field(0.1, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(800, alias="LLM_MAX_TOKENS")
    llm_timeout_seconds: float = Field(30.0, alias="LLM_TIMEOUT_SECONDS")

    # Receipt analysis
    max_upload_bytes: int = Field(10 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    default_confidence: float = Field(0.85, alias="DEFAULT_CONFIDENCE")
    default_image_media_type: str = Field("image/jpeg", alias="DEFAULT_IMAGE_MEDIA_TYPE")

    # Storage
    database_path: str = Field("expenses.db", alias="DATABASE_PATH")

    # CORS allowed origins (comma-separated list for production deployment)
    cors_origins: str = Field("http://localhost:5173", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

settings = Settings()
