"""
AWS client management for Lambda function.

boto3 clients are created once per process and reused by every invocation
handled by the same Lambda container. boto3 clients are thread safe, so the
cached handles are shared read-only across concurrent requests.
"""

import logging
from typing import Optional

import boto3
from botocore.config import Config

from image_pipeline import BedrockTextGenerator, DescriptionPipeline, RekognitionLabelDetector
from core.utils.config import ServiceConfig

logger = logging.getLogger(__name__)

# Cache for the process-wide configuration and pipeline
_cached_config: Optional[ServiceConfig] = None
_cached_pipeline: Optional[DescriptionPipeline] = None


def _client_config(config: ServiceConfig) -> Config:
    """Timeouts bound every outbound call; SDK retries are disabled (one attempt per call)."""
    return Config(
        region_name=config.region,
        connect_timeout=config.connect_timeout_seconds,
        read_timeout=config.service_timeout_seconds,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def create_rekognition_client(config: ServiceConfig):
    logger.info(f"Creating Rekognition client in {config.region}")
    return boto3.client("rekognition", config=_client_config(config))


def create_bedrock_runtime_client(config: ServiceConfig):
    logger.info(f"Creating Bedrock Runtime client in {config.region}")
    return boto3.client("bedrock-runtime", config=_client_config(config))


def build_pipeline(config: ServiceConfig) -> DescriptionPipeline:
    """Wire the production label detector and text generator into a pipeline."""
    return DescriptionPipeline(
        detector=RekognitionLabelDetector(create_rekognition_client(config)),
        generator=BedrockTextGenerator(create_bedrock_runtime_client(config)),
        generation_config=config.generation,
        max_labels=config.max_labels,
        min_confidence=config.min_confidence,
    )


def get_service_config() -> ServiceConfig:
    """Get the process-wide service configuration, loading it on first use."""
    global _cached_config
    if _cached_config is None:
        _cached_config = ServiceConfig.from_env()
        logger.info(
            f"Loaded configuration - stage: {_cached_config.stage}, region: {_cached_config.region}, "
            f"max_labels: {_cached_config.max_labels}, min_confidence: {_cached_config.min_confidence}"
        )
    return _cached_config


def get_pipeline() -> DescriptionPipeline:
    """Get the process-wide pipeline, creating AWS clients on first use."""
    global _cached_pipeline
    if _cached_pipeline is None:
        _cached_pipeline = build_pipeline(get_service_config())
    return _cached_pipeline


def set_pipeline(pipeline: Optional[DescriptionPipeline]) -> None:
    """Replace the cached pipeline (local runs and tests inject doubles here)."""
    global _cached_pipeline
    _cached_pipeline = pipeline


def reset_cache() -> None:
    """Drop cached configuration and clients so the next call rebuilds them."""
    global _cached_config, _cached_pipeline
    _cached_config = None
    _cached_pipeline = None
