from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "statements"
    db_username: str = "statements"
    db_password: str = "secret"
    db_pool_max_size: int = 4
    db_connect_timeout_seconds: float = 10.0

    files_root: str = "/app/files"

    poll_interval_seconds: int = 60
    poll_batch_size: int = 5

    pdf_engine: str = "pdfplumber"
    image_based_chars_per_page: int = 50
    image_pages_per_call: int = 10
    image_render_dpi: int = 150

    chunk_delay_seconds: float = 2.0
    max_period_months: int = 24
    header_context_lines: int = 5
    dedupe_transactions: bool = True
    verify_balance_chain: bool = True
    flag_confidence_threshold: float = 0.8
    metadata_text_limit: int = 100_000

    extraction_provider: str = "openai"

    extraction_openai_api_key: str = ""
    extraction_openai_model_name: str = "gpt-4o-mini"
    extraction_openai_timeout_seconds: int = 60
    extraction_openai_temperature: float = 0.0

    extraction_openai_compatible_api_key: str = ""
    extraction_openai_compatible_model_name: str = ""
    extraction_openai_compatible_timeout_seconds: int = 60
    extraction_openai_compatible_base_url: str = ""

    extraction_openrouter_api_key: str = ""
    extraction_openrouter_model_name: str = ""
    extraction_openrouter_timeout_seconds: int = 60

    extraction_groq_api_key: str = ""
    extraction_groq_model_name: str = ""
    extraction_groq_timeout_seconds: int = 60

    extraction_together_api_key: str = ""
    extraction_together_model_name: str = ""
    extraction_together_timeout_seconds: int = 60

    extraction_deepseek_api_key: str = ""
    extraction_deepseek_model_name: str = ""
    extraction_deepseek_timeout_seconds: int = 60

    extraction_ollama_api_key: str = "ollama"
    extraction_ollama_model_name: str = ""
    extraction_ollama_timeout_seconds: int = 120
