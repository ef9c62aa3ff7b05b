"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
All configuration is loaded from environment variables and the .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from conveyor_ai.agent_core.runtime.models import GroupFailurePolicy

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class CORSConfig(BaseModel):
    """CORS configuration."""

    origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS", description="Allowed CORS origins (use * for all)")
    allow_credentials: bool = Field(
        default=True, alias="CORS_ALLOW_CREDENTIALS", description="Allow credentials in CORS requests"
    )
    allow_methods: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_METHODS", description="Allowed HTTP methods (use * for all)"
    )
    allow_headers: list[str] = Field(
        default=["*"], alias="CORS_ALLOW_HEADERS", description="Allowed HTTP headers (use * for all)"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are bound from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =====================================================================
    # Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="Server host address to bind to",
        alias="CONVEYOR_AI_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="Server port number",
        alias="CONVEYOR_AI_SERVER_PORT",
    )

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="CONVEYOR_AI_LOG_LEVEL",
    )
    log_format: str = Field(
        default="detailed",
        description="Log line format (simple, detailed, json)",
        alias="CONVEYOR_AI_LOG_FORMAT",
    )
    log_file_dir: str = Field(default="logs", description="Directory for the log file", alias="CONVEYOR_AI_LOG_FILE_DIR")
    enable_file_logging: bool = Field(
        default=False, description="Also write logs to a file", alias="CONVEYOR_AI_ENABLE_FILE_LOGGING"
    )

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./conveyor_ai.db",
        description="Async SQLAlchemy URL for the execution state store (postgres URLs use asyncpg)",
        alias="DATABASE_URL",
    )

    # =====================================================================
    # Execution Configuration
    # =====================================================================
    group_failure_policy: GroupFailurePolicy = Field(
        default=GroupFailurePolicy.halt,
        alias="CONVEYOR_AI_GROUP_FAILURE_POLICY",
    )
    step_timeout_seconds: Optional[float] = Field(default=None, alias="CONVEYOR_AI_STEP_TIMEOUT_SECONDS")
    remediator_agent: Optional[str] = Field(
        default=None,
        description="Registered agent consulted when a plan step fails (e.g. 'error-handler'); unset disables recovery",
        alias="CONVEYOR_AI_REMEDIATOR_AGENT",
    )
    max_recovery_attempts: int = Field(
        default=2,
        ge=0,
        description="Retries of a failed step allowed by the remediator",
        alias="CONVEYOR_AI_MAX_RECOVERY_ATTEMPTS",
    )

    # =====================================================================
    # Agents, Pipelines and Planning
    # =====================================================================
    planner_model: Optional[str] = Field(
        default=None,
        description="Pydantic AI model name for the planner (e.g. 'openai:gpt-4o'); unset uses the deterministic planner",
        alias="CONVEYOR_AI_PLANNER_MODEL",
    )
    summarizer_model: Optional[str] = Field(
        default=None,
        description="Pydantic AI model name for the summarizer agent; unset truncates instead",
        alias="CONVEYOR_AI_SUMMARIZER_MODEL",
    )
    pipelines_file: Optional[str] = Field(
        default=None,
        description="JSON file with extra static pipelines",
        alias="CONVEYOR_AI_PIPELINES_FILE",
    )
    error_handler_model: Optional[str] = Field(
        default=None,
        description="Pydantic AI model name for the error-handler agent; unset always fails gracefully",
        alias="CONVEYOR_AI_ERROR_HANDLER_MODEL",
    )
    agent_module_allowlist: list[str] = Field(
        default=["conveyor_ai."],
        description="Module prefixes POST /agents may load entry points from ('*' allows any module)",
        alias="CONVEYOR_AI_AGENT_MODULE_ALLOWLIST",
    )
    discover_agents: bool = Field(
        default=False,
        description="Register agents published under the 'conveyor_ai.agents' entry-point group",
        alias="CONVEYOR_AI_DISCOVER_AGENTS",
    )

    # =====================================================================
    # CORS Configuration
    # =====================================================================
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(default=["*"], alias="CORS_ALLOW_METHODS")
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def cors(self) -> CORSConfig:
        """Get CORS configuration."""
        return CORSConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
