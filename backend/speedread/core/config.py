"""
SpeedRead Application Configuration
"""
import os
from typing import Dict, Any, List, Optional
from pydantic import validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""
    APP_NAME: str = "SpeedRead"
    LOG_LEVEL: str = "INFO"

    # db paths
    SQLITE_DB_FILE: str = "data/speedread.db"

    # storage paths
    UPLOAD_DIR: str = "data/uploads"

    # pacing
    DEFAULT_WPM: int = 300
    MIN_WPM: int = 100
    MAX_WPM: int = 1000
    WPM_STEP: int = 25
    JUMP_PERCENT: int = 5
    MIN_GROUP_CHARS: int = 8
    MAX_GROUP_CHARS: int = 14
    MAX_GROUP_WORDS: int = 3

    # chapter detection
    MIN_CHAPTER_WORDS: int = 50
    MAX_HEADING_LENGTH: int = 80
    LEADING_TEXT_THRESHOLD: int = 100
    GAP_TITLE_MAX_LENGTH: int = 60

    # Ollama heading oracle
    ORACLE_ENABLED: bool = False
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    # OLLAMA_LLM_MODEL: str = "llama3.2:3b"
    OLLAMA_LLM_MODEL: Optional[str] = None
    OLLAMA_PREFERRED_MODELS: List[str] = ["llama3.2", "llama3.1", "llama3", "llama2", "mistral", "phi"]
    ORACLE_STATUS_TIMEOUT: float = 5.0
    ORACLE_TIMEOUT: float = 10.0
    ORACLE_SAMPLE_SIZE: int = 4000
    ORACLE_MAX_SAMPLES: int = 8

    class Config:
        """Pydantic config"""
        env_file = ".env"
        env_file_encoding = "utf-8"

    @validator("UPLOAD_DIR")
    def create_directories(cls, directory_path):
        """Ensure directories exist"""
        os.makedirs(directory_path, exist_ok=True)
        return directory_path

    def get_ollama_config(self) -> Dict[str, Any]:
        """Return Ollama configuration dictionary"""
        return {
            "base_url": self.OLLAMA_BASE_URL,
            "llm_model": self.OLLAMA_LLM_MODEL,
            "preferred_models": self.OLLAMA_PREFERRED_MODELS,
            "timeout": self.ORACLE_TIMEOUT,
            "status_timeout": self.ORACLE_STATUS_TIMEOUT,
        }

settings = Settings()

#  all dirs exist
os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
