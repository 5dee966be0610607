# WORKFLOW: Core configuration management for the STOP Package Transformer.
# Used by: All modules throughout the application
# Configuration includes:
# - API settings (prefix, CORS, host/port, workspace directory)
# - Delivery identifiers written into submission-order documents
# - Output archive settings (compression, report naming)
# - Defaults used when the source package lacks optional metadata
# - Logging configuration
#
# Loaded at startup and used by all services for consistent configuration.

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API
    api_v1_prefix: str = "/api/v1"
    project_name: str = "STOP Package Transformer"
    version: str = "1.0.0"

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"

    # CORS
    allowed_origins: list[str] = ["*"]
    allowed_methods: list[str] = ["*"]
    allowed_headers: list[str] = ["*"]

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8001

    # Packages read and written through the API must live below this directory
    workspace_dir: str = "data"

    # Delivery
    delivery_party_id: str = "00000001003214345000"
    default_program_name: str = "Klimaatadaptatie"

    # Output archive
    zip_compression_level: int = 6
    report_suffix: str = "_rapport"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
