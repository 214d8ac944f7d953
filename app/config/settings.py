from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "casefile"
    db_username: str = "casefile"
    db_password: str = "secret"
    db_pool_max_size: int = 10

    job_poll_interval_seconds: int = 5
    default_job_attempts: int = 3
    default_backoff_delay_ms: int = 1000
    default_worker_concurrency: int = 5
    audit_worker_concurrency: int = 10
    job_lock_timeout_seconds: int = 300
    completed_job_retention_seconds: int = 3600
    health_check_timeout_seconds: float = 2.0

    s3_endpoint_url: str = "http://localhost:4566"
    s3_region: str = "eu-west-1"
    s3_access_key: str = "localstack"
    s3_secret_key: str = "localstack"
    s3_documents_bucket: str = "casefile-documents-dev"
    upload_url_expires_seconds: int = 3600
    download_url_expires_seconds: int = 300

    scanner_provider: str = "clamav_http"
    scanner_url: str = "http://localhost:3310/api/v1/scan"
    scanner_timeout_seconds: int = 60
