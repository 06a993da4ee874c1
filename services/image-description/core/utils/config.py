"""
Configuration for the image description Lambda function.

Values come from environment variables (and a local .env file when present)
and are read once per process at cold start.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from image_pipeline import GenerationConfig
from image_pipeline.orchestrator import DEFAULT_MAX_LABELS, DEFAULT_MIN_CONFIDENCE

DEFAULT_STAGE = "dev"
DEFAULT_REGION = "us-east-1"

# Per outbound call bound (seconds); matches the Lambda's own timeout
DEFAULT_SERVICE_TIMEOUT_SECONDS = 30.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 5.0

# Cancel in-flight work this long before the Lambda deadline
DEFAULT_CANCEL_MARGIN_MS = 500

DEFAULT_MAX_TOKEN_COUNT = 512
DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 0.9


def get_stage() -> str:
    """Get the current deployment stage from environment."""
    return os.getenv("STAGE", DEFAULT_STAGE)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'")


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class ServiceConfig:
    stage: str
    region: str
    max_labels: int
    min_confidence: float
    generation: GenerationConfig
    service_timeout_seconds: float
    connect_timeout_seconds: float
    cancel_margin_ms: int
    log_level: str

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ServiceConfig":
        load_dotenv(dotenv_path)

        generation = GenerationConfig(
            max_token_count=_env_int("MAX_TOKEN_COUNT", DEFAULT_MAX_TOKEN_COUNT),
            temperature=_env_float("TEMPERATURE", DEFAULT_TEMPERATURE),
            top_p=_env_float("TOP_P", DEFAULT_TOP_P),
            stop_sequences=_env_list("STOP_SEQUENCES"),
        )

        config = cls(
            stage=get_stage(),
            region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or DEFAULT_REGION,
            max_labels=_env_int("MAX_LABELS", DEFAULT_MAX_LABELS),
            min_confidence=_env_float("MIN_CONFIDENCE", DEFAULT_MIN_CONFIDENCE),
            generation=generation,
            service_timeout_seconds=_env_float("SERVICE_TIMEOUT_SECONDS", DEFAULT_SERVICE_TIMEOUT_SECONDS),
            connect_timeout_seconds=_env_float("CONNECT_TIMEOUT_SECONDS", DEFAULT_CONNECT_TIMEOUT_SECONDS),
            cancel_margin_ms=_env_int("CANCEL_MARGIN_MS", DEFAULT_CANCEL_MARGIN_MS),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.max_labels < 1:
            raise ValueError(f"MAX_LABELS must be >= 1, got {self.max_labels}")
        if not 0.0 <= self.min_confidence <= 100.0:
            raise ValueError(f"MIN_CONFIDENCE must be between 0 and 100, got {self.min_confidence}")
        if self.generation.max_token_count < 1:
            raise ValueError(f"MAX_TOKEN_COUNT must be >= 1, got {self.generation.max_token_count}")
        if not 0.0 <= self.generation.temperature <= 1.0:
            raise ValueError(f"TEMPERATURE must be between 0 and 1, got {self.generation.temperature}")
        if not 0.0 <= self.generation.top_p <= 1.0:
            raise ValueError(f"TOP_P must be between 0 and 1, got {self.generation.top_p}")
        if self.service_timeout_seconds <= 0 or self.connect_timeout_seconds <= 0:
            raise ValueError("SERVICE_TIMEOUT_SECONDS and CONNECT_TIMEOUT_SECONDS must be positive")
        if self.cancel_margin_ms < 0:
            raise ValueError(f"CANCEL_MARGIN_MS must be >= 0, got {self.cancel_margin_ms}")
