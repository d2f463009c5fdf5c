from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # LLM
    llm_provider: str = "anthropic"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    deepseek_api_key: str = ""
    llm_api_key: str = ""  # Generic key — used when provider-specific key is empty
    llm_model: str = "claude-sonnet-4-20250514"
    llm_fast_model: str = "claude-3-5-haiku-20241022"  # Intent classification
    llm_base_url: str = ""  # Custom base URL for openai_compatible provider
    llm_timeout_seconds: float = 30.0
    classification_timeout_seconds: float = 8.0
    classification_max_tokens: int = 1024

    # Router
    state_retention_hours: int = 24  # Pending state and pre-session messages
    recent_sessions_limit: int = 10
    context_sessions_limit: int = 5
    handlers_user_dir: str = "./src/handlers/user"

    # Token budget
    context_budget_tokens: int = 100_000
    output_reservation_tokens: int = 4_000

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
