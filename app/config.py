from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Credentials are checked per submission, not at startup.
    openai_api_key: str = ""
    openai_assistant: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_beta: str = "assistants=v2"
    request_timeout: float = 30.0
    poll_interval_seconds: float = 1.0
    poll_max_wait_seconds: float | None = None
    poll_max_attempts: int | None = None


settings = Settings()
