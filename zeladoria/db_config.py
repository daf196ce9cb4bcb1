"""Database configuration and setup for different environments."""
import os


def get_database_engine_options(database_uri):
    """
    Engine options for a PostgreSQL database; SQLite needs none.

    Traffic is a handful of API requests plus one daily recalculation job,
    so the pool stays small. DATABASE_SSLMODE and DATABASE_POOL_SIZE tune it
    per deployment.
    """
    if not database_uri or not database_uri.startswith("postgresql"):
        return None

    connect_args = {
        "connect_timeout": 10,
        "application_name": "zeladoria",
    }
    sslmode = os.environ.get("DATABASE_SSLMODE")
    if sslmode:
        connect_args["sslmode"] = sslmode

    return {
        "pool_pre_ping": True,  # Hosted databases drop idle connections overnight
        "pool_size": int(os.environ.get("DATABASE_POOL_SIZE", "2")),
        "max_overflow": 3,
        "connect_args": connect_args,
    }


def normalize_database_url(url):
    """SQLAlchemy expects postgresql://, some providers still hand out postgres://."""
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def get_local_database_config():
    """Get database configuration for local development.

    Returns:
        tuple: (database_uri, engine_options)
    """
    database_uri = normalize_database_url(os.environ.get("LOCAL_DATABASE_URL") or "sqlite:///zeladoria.sqlite")
    return database_uri, get_database_engine_options(database_uri)


def get_sandbox_database_config():
    """Get database configuration for sandbox/staging environment.

    Returns:
        tuple: (database_uri, engine_options)

    Raises:
        ValueError: If database URL is not configured
    """
    database_url = os.environ.get("SANDBOX_DATABASE_URL")
    if not database_url:
        raise ValueError("SANDBOX_DATABASE_URL must be set for sandbox environment")

    database_uri = normalize_database_url(database_url)
    return database_uri, get_database_engine_options(database_uri)


def get_production_database_config():
    """Get database configuration for production environment.

    Returns:
        tuple: (database_uri, engine_options)

    Raises:
        ValueError: If database URL is not configured
    """
    database_url = os.environ.get("PRODUCTION_DATABASE_URL") or os.environ.get("DATABASE_URL")
    if not database_url:
        raise ValueError("PRODUCTION_DATABASE_URL or DATABASE_URL must be set for production environment")

    database_uri = normalize_database_url(database_url)
    return database_uri, get_database_engine_options(database_uri)


def get_database_config(environment=None):
    """Get database configuration based on environment.

    Args:
        environment: Environment name ('local', 'sandbox', 'production')
                    If None, will be determined from ENVIRONMENT or FLASK_ENV env vars.

    Returns:
        tuple: (database_uri, engine_options)
    """
    if environment is None:
        environment = os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT", "local")
    environment = environment.lower()

    if environment in ["local", "development", "dev"]:
        return get_local_database_config()
    elif environment in ["sandbox", "staging", "stage"]:
        return get_sandbox_database_config()
    elif environment in ["production", "prod"]:
        return get_production_database_config()
    else:
        # Default to local for safety
        return get_local_database_config()


def configure_database(app, database_uri=None):
    """Configure database settings for the Flask app.

    Sets SQLALCHEMY_DATABASE_URI and SQLALCHEMY_ENGINE_OPTIONS on the app
    config. An explicit database_uri (tests, scripts) bypasses the
    environment lookup and uses no engine options.

    Args:
        app: Flask application instance
        database_uri: Optional URI overriding the environment configuration
    """
    if database_uri:
        engine_options = None
    else:
        database_uri, engine_options = get_database_config()

    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SQLALCHEMY_ECHO"] = False  # Set to True for SQL query debugging

    if engine_options:
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options
