from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database (answers + play sessions)
    database_url: str = Field(default="sqlite:///./mathgame.db", validation_alias="DATABASE_URL")

    # AI hints; without a key every hint comes from the static fallback set
    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI_MODEL")

    # Comma-separated CORS origins for the browser client
    frontend_origin: str = Field(default="", validation_alias="FRONTEND_ORIGIN")

    # Client-side collaborator calls
    api_base_url: str = Field(default="http://127.0.0.1:8000", validation_alias="MATHGAME_API_URL")
    request_timeout_s: float = Field(default=5.0, validation_alias="MATHGAME_REQUEST_TIMEOUT")

    # Pause between scoring an answer and dealing the next question
    next_question_delay_s: float = Field(default=1.0, validation_alias="MATHGAME_NEXT_QUESTION_DELAY")

    # python -m mathgame
    host: str = Field(default="127.0.0.1", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def cors_origins(self) -> list[str]:
        origins = [o.strip() for o in self.frontend_origin.split(",") if o.strip()]
        return origins or ["http://localhost:5173", "http://127.0.0.1:5173"]


settings = Settings()
