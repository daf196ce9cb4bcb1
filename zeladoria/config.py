import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class with common settings."""
    # Mowing production rates (m² per working day) used when app_config is empty
    DEFAULT_PRODUCTION_RATE_LOTE1 = float(os.environ.get("DEFAULT_PRODUCTION_RATE_LOTE1", "85000"))
    DEFAULT_PRODUCTION_RATE_LOTE2 = float(os.environ.get("DEFAULT_PRODUCTION_RATE_LOTE2", "70000"))

    # Daily full recalculation (background scheduler)
    DAILY_RECALCULATION_ENABLED = os.environ.get("DAILY_RECALCULATION_ENABLED", "true").lower() == "true"
    DAILY_RECALCULATION_HOUR = int(os.environ.get("DAILY_RECALCULATION_HOUR", "1"))

    # Municipality timezone, used to decide what "today" is
    LOCAL_TIMEZONE = os.environ.get("LOCAL_TIMEZONE", "America/Sao_Paulo")

    # CORS configuration
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")


class LocalConfig(Config):
    """Configuration for local development."""
    ENV = "local"
    DEBUG = True


class SandboxConfig(Config):
    """Configuration for sandbox/staging environment."""
    ENV = "sandbox"
    DEBUG = False


class ProductionConfig(Config):
    """Configuration for production environment."""
    ENV = "production"
    DEBUG = False


def get_config():
    """Get the appropriate configuration class based on environment variable.

    Environment is determined by FLASK_ENV or ENVIRONMENT variable:
    - 'local' or 'development' -> LocalConfig
    - 'sandbox' or 'staging' -> SandboxConfig
    - 'production' or 'prod' -> ProductionConfig

    Defaults to LocalConfig if not set.
    """
    env = (os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")).lower()

    if env in ["local", "development", "dev"]:
        return LocalConfig
    elif env in ["sandbox", "staging", "stage"]:
        return SandboxConfig
    elif env in ["production", "prod"]:
        return ProductionConfig
    else:
        # Default to local for safety
        return LocalConfig
