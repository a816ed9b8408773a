"""
Application Settings

Loaded from environment variables and the project-level .env file.
Demo vs live collaborators is an explicit setting consumed by
build_collaborators(), never a branch inside the pipeline.
"""
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from oncovector.core.analysis import HIGH_CONFIDENCE_RISK_THRESHOLD
from oncovector.core.retrieval.similarity import DEFAULT_MIN_RELEVANCE, DEFAULT_TOP_K

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Service ─────────────────────────────────────────────────────────
    app_name: str = "OncoVector Clinical Decision Support"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # ── Gemini ──────────────────────────────────────────────────────────
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"),
    )
    gemini_model: str = "gemini-2.5-flash"
    gemini_temperature: float = 0.2
    gemini_timeout_seconds: int = 60

    # None = decide from credential presence
    demo_mode: Optional[bool] = None

    # ── Registry / retrieval ────────────────────────────────────────────
    registry_path: Optional[Path] = None
    retrieval_top_k: int = Field(default=DEFAULT_TOP_K, ge=1)
    retrieval_min_relevance: float = Field(default=DEFAULT_MIN_RELEVANCE, ge=0.0, le=100.0)

    high_confidence_risk_threshold: int = Field(default=HIGH_CONFIDENCE_RISK_THRESHOLD, ge=0, le=100)

    # Cosmetic pause after the no-imagery vision skip and before the result
    stage_delay_seconds: float = Field(default=0.0, ge=0.0)

    # ── Registry health probe ───────────────────────────────────────────
    registry_nodes: List[str] = Field(default_factory=list)
    probe_timeout_seconds: float = 5.0
    probe_degraded_latency_ms: int = 1500
    demo_jitter_seed: int = 1337

    @property
    def use_demo_collaborators(self) -> bool:
        if self.demo_mode is not None:
            return self.demo_mode
        return not self.gemini_api_key


settings = Settings()
