from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Primary provider (Gemini, OpenAI-compatible endpoint)
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    gemini_model: str = "gemini-1.5-flash"

    # Secondary provider (Groq) and its model cascade, in fallback order
    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_models: str = "llama-3.1-8b-instant,llama3-8b-8192,llama3-70b-8192,gemma2-9b-it,gemma-7b-it"
    classifier_model: str = "llama-3.1-8b-instant"
    llm_max_tokens: int = 4096

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Rate limiting
    rate_limit_secret: str = ""
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 15
    daily_conversation_limit: int = 50

    # Conversations / sessions
    conversation_ttl_seconds: int = 7 * 24 * 60 * 60
    shared_ttl_seconds: int = 30 * 24 * 60 * 60
    session_ttl_seconds: int = 24 * 60 * 60
    claim_unowned_conversations: bool = True  # first requester claims an unowned conversation

    # Scraping
    scrape_renderer: str = "playwright"  # playwright | http
    scrape_timeout_ms: int = 30000
    scrape_idle_timeout_ms: int = 5000
    scrape_max_chars: int = 40000
    scrape_cache_ttl_seconds: int = 7 * 24 * 60 * 60
    scrape_cache_max_bytes: int = 1024000
    search_max_results: int = 5

    # App
    environment: str = "production"  # development | production
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def groq_model_list(self) -> list[str]:
        return [m.strip() for m in self.groq_models.split(",") if m.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.lower().strip() == "development"


settings = Settings()
