"""
Text generation clients.

TextGenerator is the seam the orchestrator depends on; BedrockTextGenerator
invokes a fixed Amazon Titan text model through Bedrock Runtime.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from .errors import GenerationError
from .models import GenerationConfig

logger = logging.getLogger(__name__)

TEXT_MODEL_ID = "amazon.titan-text-express-v1"


class TextGenerator(ABC):
    @abstractmethod
    def generate(self, prompt: str, config: GenerationConfig) -> str:
        """Return generated text with surrounding whitespace stripped. Raises GenerationError."""
        ...


def build_request_body(prompt: str, config: GenerationConfig) -> Dict[str, Any]:
    return {
        "inputText": prompt,
        "textGenerationConfig": config.to_request_config(),
    }


def extract_output_text(payload: Dict[str, Any]) -> str:
    """Return the first candidate's text from a Titan response body."""
    try:
        first = payload["results"][0]
        text = first["outputText"]
    except (KeyError, IndexError, TypeError) as e:
        raise GenerationError(f"Text generation returned a malformed response: {e!r}") from e
    if text is None:
        return ""
    if not isinstance(text, str):
        raise GenerationError(f"Text generation returned non-text output of type {type(text).__name__}")
    return text.strip()


class BedrockTextGenerator(TextGenerator):
    """Text generator backed by a boto3 ``bedrock-runtime`` client."""

    def __init__(self, client, model_id: str = TEXT_MODEL_ID):
        self._client = client
        self.model_id = model_id

    def generate(self, prompt: str, config: GenerationConfig) -> str:
        body = build_request_body(prompt, config)

        logger.info(f"Generating text with {self.model_id} - maxTokenCount: {config.max_token_count}, temperature: {config.temperature}")
        logger.debug(f"Prompt: {prompt}")
        try:
            response = self._client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(body),
            )
            raw = response["body"].read()
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "Unknown")
            message = error.get("Message", str(e))
            logger.error(f"Text generation failed: {code} - {message}")
            raise GenerationError(f"Text generation failed ({code}): {message}", details={"aws_error_code": code}) from e
        except BotoCoreError as e:
            logger.error(f"Text generation request failed: {e}")
            raise GenerationError(f"Text generation request failed: {e}", details={"exception": type(e).__name__}) from e
        except (KeyError, AttributeError) as e:
            raise GenerationError(f"Text generation returned a malformed response: {e!r}") from e

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Invalid JSON response from text generation: {e}")
            raise GenerationError(f"Text generation returned invalid JSON: {e}") from e

        text = extract_output_text(payload)
        logger.info(f"Generated {len(text)} characters")
        return text
