from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    memory_ttl_seconds: int = 600
    memory_max_entries: int = 400
    memory_default_scope: str = "__default__"

    tagger_engine: str = "spacy"
    spacy_model: str = "en_core_web_sm"

    tagger_llm_base_url: str = "http://localhost:11434/v1"
    tagger_llm_api_key: str = "ollama"
    tagger_llm_model_name: str = "llama3.1"
    tagger_llm_timeout_seconds: int = 30

    restore_keep_mask_markers: bool = False
