"""
Configuration settings for the benefit eligibility engine
"""
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application Configuration
    app_name: str = Field(default="BenefitMatch Eligibility Engine", env="APP_NAME")
    app_version: str = Field(default="1.0.0", env="APP_VERSION")
    debug: bool = Field(default=False, env="DEBUG")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # API Configuration
    api_prefix: str = Field(default="/api/v1", env="API_PREFIX")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8080",
        env="CORS_ORIGINS"
    )

    # Rule Evaluation
    evaluation_timeout_ms: int = Field(default=5000, gt=0, env="EVALUATION_TIMEOUT_MS")
    evaluation_max_depth: int = Field(default=100, gt=0, env="EVALUATION_MAX_DEPTH")
    evaluation_strict: bool = Field(default=False, env="EVALUATION_STRICT")

    # Result Categorization
    maybe_confidence_threshold: int = Field(default=70, ge=0, le=100, env="MAYBE_CONFIDENCE_THRESHOLD")
    include_not_qualified: bool = Field(default=True, env="INCLUDE_NOT_QUALIFIED")
    hard_stop_rule_ids: str = Field(default="", env="HARD_STOP_RULE_IDS")

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        if ',' in self.cors_origins:
            return [origin.strip() for origin in self.cors_origins.split(',')]
        return [self.cors_origins.strip()]

    def get_hard_stop_rule_ids(self) -> List[str]:
        """Get configured hard-stop rule IDs as a list"""
        return [rule_id.strip() for rule_id in self.hard_stop_rule_ids.split(',') if rule_id.strip()]

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Create global settings instance
settings = Settings()
