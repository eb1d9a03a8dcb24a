# agenciaos/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from loguru import logger
from pathlib import Path
import warnings

# Sobe a partir do módulo (ou do CWD) procurando o arquivo .env
def find_dotenv_path(filename='.env', raise_error_if_not_found=False, usecwd=False) -> str | None:
    if usecwd or '__file__' not in globals(): start_dir = Path.cwd()
    else: start_dir = Path(__file__).resolve().parent
    current_dir = start_dir
    for _ in range(10):
        env_path = current_dir / filename
        if env_path.is_file(): logger.debug(f"Found {filename} file at: {env_path}"); return str(env_path)
        parent_dir = current_dir.parent
        if parent_dir == current_dir: break
        current_dir = parent_dir
    if not usecwd and '__file__' in globals():
        env_path_cwd = Path.cwd() / filename
        if env_path_cwd.is_file(): logger.debug(f"Found {filename} file at CWD: {env_path_cwd}"); return str(env_path_cwd)
    logger.debug(f"{filename} not found in parent directories of {start_dir} or CWD.")
    if raise_error_if_not_found: raise IOError(f'{filename} not found')
    return None

DEFAULT_SECRET_KEY = "!!!GENERATE_A_STRONG_SECRET_KEY_32_BYTES_HEX!!!"

class Settings(BaseSettings):
    PROJECT_NAME: str = "AgênciaOS"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"

    # Database & Cache
    MONGODB_URI: str
    MONGODB_DB_NAME: str | None = None # Se vazio, extraído da URI
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    CELERY_EBOOK_QUEUE: str = "ebooks"

    # Security
    SECRET_KEY: str # For JWT
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # AI Services
    OPENAI_API_KEY: str | None = None
    OPENAI_API_URL: str = "https://api.openai.com/v1/chat/completions"
    OPENAI_EBOOK_MODEL: str = "gpt-4o"
    OPENAI_COPY_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 60.0

    # PDF rendering (MarkupGo)
    MARKUPGO_API_KEY: str | None = None
    MARKUPGO_PDF_URL: str = "https://api.markupgo.com/api/v1/pdf/buffer"
    MARKUPGO_TIMEOUT_SECONDS: float = 120.0

    # Ebooks
    UPLOADS_DIR: str = "uploads"
    UPLOADS_URL_PATH: str = "/uploads"
    EBOOK_CHAPTER_DELAY_SECONDS: float = 1.0

    # Rate limiting (storage URI no formato da lib `limits`: memory://, redis://host:port/db)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_GLOBAL: str = "50/minute"
    RATE_LIMIT_FREE_AI: str = "20/month"
    RATE_LIMIT_FREE_API: str = "100/hour"
    RATE_LIMIT_PRO_AI: str = "500/month"
    RATE_LIMIT_PRO_API: str = "1000/hour"

    # Gunicorn
    GUNICORN_BIND: str = "0.0.0.0:8000"
    GUNICORN_WORKERS: int | None = None
    GUNICORN_WORKER_CLASS: str = "uvicorn.workers.UvicornWorker"

    model_config = SettingsConfigDict(
        # Tenta carregar .env primeiro, depois .env.local (que pode sobrescrever)
        env_file=tuple(p for p in (find_dotenv_path('.env'), find_dotenv_path('.env.local')) if p) or None,
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

@lru_cache()
def get_settings() -> Settings:
    """Carrega e valida as configurações da aplicação."""
    logger.info("Loading application settings...")
    env_files_found = [p for p in [find_dotenv_path('.env'), find_dotenv_path('.env.local')] if p]
    if env_files_found:
        logger.info(f"Loading environment variables from: {', '.join(env_files_found)}")
    else:
        logger.warning("No .env file found. Loading settings from system environment variables only.")

    try:
        settings_instance = Settings()

        required_vars = ['MONGODB_URI', 'CELERY_BROKER_URL', 'CELERY_RESULT_BACKEND', 'SECRET_KEY']
        missing = [k for k in required_vars if not getattr(settings_instance, k, None)]
        if missing:
            logger.critical(f"Missing critical environment variables: {', '.join(missing)}")
            raise ValueError(f"Missing critical environment variables: {', '.join(missing)}")

        if settings_instance.SECRET_KEY == DEFAULT_SECRET_KEY:
            logger.warning("SECURITY WARNING: Using default SECRET_KEY. Generate a strong key (e.g., `openssl rand -hex 32`)!")
            warnings.warn("SECURITY WARNING: Using default SECRET_KEY. Please generate and set a strong secret key!")

        # Integrações externas: apenas avisar, a API sobe sem elas
        if not settings_instance.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY missing. Ebook generation and copy generators will fail.")
        if not settings_instance.MARKUPGO_API_KEY:
            logger.warning("MARKUPGO_API_KEY missing. Ebook PDF rendering will fail.")

        logger.info("Settings loaded and validated successfully.")
        return settings_instance
    except ValueError as val_err: # pydantic.ValidationError herda de ValueError
        logger.critical(f"CRITICAL ERROR in settings validation: {val_err}")
        raise SystemExit(f"Settings validation failed: {val_err}")

settings = get_settings()
