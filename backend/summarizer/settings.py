"""
YouTube AI Summarizer - Application Settings
"""
from functools import lru_cache
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from typing import Optional, List

# Load environment variables from the project root .env
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "YouTube AI Summarizer"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database (summary history)
    database_url: Optional[str] = None

    # Generative backends - a backend is usable only when its key is set
    gemini_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    deepseek_api_key: Optional[str] = None

    gemini_model: str = "gemini-2.0-flash-001"
    groq_model: str = "llama-3.3-70b-versatile"
    openai_model: str = "gpt-4o-mini"
    deepseek_model: str = "deepseek-chat"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    deepseek_base_url: str = "https://api.deepseek.com"

    llm_temperature: float = 0.7
    llm_max_tokens: int = 2048

    # Speech-to-text fallback (uses the OpenAI key)
    whisper_model: str = "whisper-1"

    # Pipeline
    chunk_size_chars: int = 7000
    chunk_overlap_chars: int = 1000
    default_language: str = "zh"
    default_ai_model: str = "deepseek"

    # Files
    upload_dir: str = "tmp"
    audio_temp_dir: str = "/tmp"

    # Rate Limiting
    rate_limit_per_minute: int = 30

    # CORS
    cors_origins: str = "http://localhost:3000"
    cors_allow_credentials: bool = True

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    class Config:
        env_file = "../.env"  # .env is in project root, not backend folder
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra environment variables


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
