"""
Configuration management for the Voice Memo Insights service.
"""

import os
from typing import Dict, Any, Optional, List
from pathlib import Path
from pydantic import BaseModel, Field, validator
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class LLMConfig(BaseModel):
    """Configuration for the transcription and generation services."""
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4"
    transcription_model: str = "whisper-1"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-7-sonnet-20250219"
    anthropic_version: str = "2023-06-01"
    anthropic_api_base: str = "https://api.anthropic.com/v1"
    max_tokens: int = 4000
    temperature: float = 1.0
    timeout: int = 120
    max_retries: int = 3

    @validator('openai_api_key', always=True)
    def validate_openai_key(cls, v):
        # Defer hard validation to the first outbound call so the app can boot without a key
        if v:
            return v
        return os.getenv('OPENAI_API_KEY') or os.getenv('APIKEY_OPENAI')

    @validator('anthropic_api_key', always=True)
    def validate_anthropic_key(cls, v):
        if v:
            return v
        return os.getenv('ANTHROPIC_API_KEY') or os.getenv('APIKEY_ANTHROPIC_MEMEIST')


class ProcessingConfig(BaseModel):
    """Configuration for the memo processing flow."""
    default_model: str = "openai"  # openai | claude
    estimated_completion_seconds: int = 60
    cleanup_uploads: bool = True
    default_page_size: int = 20


class StoreConfig(BaseModel):
    """Configuration for memo persistence."""
    backend: str = "filesystem"  # filesystem | memory | redis
    data_dir: Path = Path("./data")
    use_cache: bool = True
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = "memo:"

    @validator('backend')
    def validate_backend(cls, v):
        v = (v or "").strip().lower()
        if v not in ("filesystem", "memory", "redis"):
            raise ValueError(f"Unknown store backend: {v}")
        return v


class ExportConfig(BaseModel):
    """Configuration for markdown / Obsidian export."""
    obsidian_vault: str = "VoiceMemos"
    filename_prefix: str = "voice-memo"


class WebConfig(BaseModel):
    """Configuration for web application."""
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    secret_key: Optional[str] = None
    max_content_length: int = 25 * 1024 * 1024  # 25MB, the transcription upload limit
    upload_folder: Path = Path("./uploads")
    allowed_extensions: List[str] = Field(
        default_factory=lambda: [".mp3", ".m4a", ".wav", ".ogg", ".aac", ".webm", ".mp4", ".mpeg", ".mpga", ".flac"]
    )
    cors_origins: str = "*"

    # Where memo processing runs: background thread, Celery worker, or inline (tests)
    task_backend: str = "thread"

    # Celery configuration
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/0"
    celery_task_time_limit: int = 600  # 10 minutes

    # WebSocket configuration
    socketio_async_mode: str = "threading"
    socketio_cors_allowed_origins: str = "*"
    socketio_message_queue: Optional[str] = None

    @validator('secret_key')
    def validate_secret_key(cls, v):
        if not v:
            v = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
        return v

    @validator('upload_folder')
    def ensure_upload_folder_exists(cls, v):
        v.mkdir(parents=True, exist_ok=True)
        return v

    @validator('task_backend')
    def validate_task_backend(cls, v):
        v = (v or "").strip().lower()
        if v not in ("thread", "celery", "inline"):
            raise ValueError(f"Unknown task backend: {v}")
        return v


class AppConfig(BaseSettings):
    """Main application configuration."""
    llm: LLMConfig = Field(default_factory=LLMConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    class Config:
        env_file = '.env'
        env_file_encoding = 'utf-8'
        env_prefix = 'VOICE_MEMO_'
        extra = 'ignore'

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Create configuration from environment variables."""
        config = cls()

        if os.getenv('OPENAI_MODEL'):
            config.llm.openai_model = os.getenv('OPENAI_MODEL')
        if os.getenv('ANTHROPIC_MODEL'):
            config.llm.anthropic_model = os.getenv('ANTHROPIC_MODEL')
        if os.getenv('VOICE_MEMO_TRANSCRIPTION_MODEL'):
            config.llm.transcription_model = os.getenv('VOICE_MEMO_TRANSCRIPTION_MODEL')
        if os.getenv('VOICE_MEMO_MAX_TOKENS'):
            config.llm.max_tokens = int(os.getenv('VOICE_MEMO_MAX_TOKENS'))

        if os.getenv('VOICE_MEMO_DEFAULT_MODEL'):
            config.processing.default_model = os.getenv('VOICE_MEMO_DEFAULT_MODEL').strip().lower()
        if os.getenv('VOICE_MEMO_CLEANUP_UPLOADS'):
            config.processing.cleanup_uploads = os.getenv('VOICE_MEMO_CLEANUP_UPLOADS').lower() == 'true'

        if os.getenv('VOICE_MEMO_STORE_BACKEND'):
            config.store.backend = os.getenv('VOICE_MEMO_STORE_BACKEND').strip().lower()
        if os.getenv('VOICE_MEMO_DATA_DIR'):
            config.store.data_dir = Path(os.getenv('VOICE_MEMO_DATA_DIR'))
        if os.getenv('VOICE_MEMO_STORE_CACHE'):
            config.store.use_cache = os.getenv('VOICE_MEMO_STORE_CACHE').lower() == 'true'

        if os.getenv('VOICE_MEMO_UPLOAD_FOLDER'):
            config.web.upload_folder = Path(os.getenv('VOICE_MEMO_UPLOAD_FOLDER'))
            config.web.upload_folder.mkdir(parents=True, exist_ok=True)
        if os.getenv('VOICE_MEMO_TASK_BACKEND'):
            config.web.task_backend = os.getenv('VOICE_MEMO_TASK_BACKEND').strip().lower()
        if os.getenv('PORT'):
            config.web.port = int(os.getenv('PORT'))

        if os.getenv('OBSIDIAN_VAULT'):
            config.export.obsidian_vault = os.getenv('OBSIDIAN_VAULT')

        if os.getenv('REDIS_URL'):
            config.store.redis_url = os.getenv('REDIS_URL')
            config.web.celery_broker_url = os.getenv('REDIS_URL')
            config.web.celery_result_backend = os.getenv('REDIS_URL')

        return config

    @classmethod
    def from_yaml(cls, path: Path) -> 'AppConfig':
        """Create configuration from YAML file."""
        import yaml

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary with secrets redacted."""
        llm = self.llm.dict()
        for key in ('openai_api_key', 'anthropic_api_key'):
            if llm.get(key):
                llm[key] = "****"
        return {
            'llm': llm,
            'processing': self.processing.dict(),
            'store': {
                **self.store.dict(),
                'data_dir': str(self.store.data_dir)
            },
            'export': self.export.dict(),
            'web': {
                **self.web.dict(),
                'secret_key': "****",
                'upload_folder': str(self.web.upload_folder)
            },
        }


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
