"""BedrockTextGenerator tests using botocore's Stubber"""
import io
import json
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ReadTimeoutError
from botocore.response import StreamingBody
from botocore.stub import Stubber

from image_pipeline import BedrockTextGenerator, ErrorKind, GenerationConfig, GenerationError, TEXT_MODEL_ID
from image_pipeline.text_generator import build_request_body

PROMPT = "Based on the following labels detected in an image: Cat. Please generate a single, descriptive sentence about the image."
CONFIG = GenerationConfig(max_token_count=256, temperature=0.5, top_p=0.8, stop_sequences=("User:",))


def _streaming(payload):
    raw = json.dumps(payload).encode("utf-8")
    return StreamingBody(io.BytesIO(raw), len(raw))


def _titan_body(*texts):
    return {
        "inputTextTokenCount": 20,
        "results": [
            {"tokenCount": 8, "outputText": text, "completionReason": "FINISH"} for text in texts
        ],
    }


@pytest.fixture
def bedrock():
    client = boto3.client(
        "bedrock-runtime",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def test_build_request_body_uses_titan_shape():
    body = build_request_body(PROMPT, CONFIG)

    assert body == {
        "inputText": PROMPT,
        "textGenerationConfig": {
            "maxTokenCount": 256,
            "temperature": 0.5,
            "topP": 0.8,
            "stopSequences": ["User:"],
        },
    }


def test_generate_invokes_fixed_model_with_prompt(bedrock):
    client, stubber = bedrock
    stubber.add_response(
        "invoke_model",
        {"body": _streaming(_titan_body("A cat.")), "contentType": "application/json"},
        expected_params={
            "modelId": TEXT_MODEL_ID,
            "contentType": "application/json",
            "accept": "application/json",
            "body": json.dumps(build_request_body(PROMPT, CONFIG)),
        },
    )

    assert BedrockTextGenerator(client).generate(PROMPT, CONFIG) == "A cat."


def test_generate_strips_whitespace_from_first_result_only(bedrock):
    client, stubber = bedrock
    stubber.add_response(
        "invoke_model",
        {"body": _streaming(_titan_body("\n  A cat sits calmly as a pet.  \n", "Second candidate")), "contentType": "application/json"},
    )

    assert BedrockTextGenerator(client).generate(PROMPT, CONFIG) == "A cat sits calmly as a pet."


def test_generate_returns_empty_string_for_blank_output(bedrock):
    client, stubber = bedrock
    stubber.add_response("invoke_model", {"body": _streaming(_titan_body("   ")), "contentType": "application/json"})

    assert BedrockTextGenerator(client).generate(PROMPT, CONFIG) == ""


def test_generate_client_error_becomes_generation_error(bedrock):
    client, stubber = bedrock
    stubber.add_client_error(
        "invoke_model",
        service_error_code="AccessDeniedException",
        service_message="You don't have access to the model with the specified model ID.",
        http_status_code=403,
    )

    with pytest.raises(GenerationError) as exc_info:
        BedrockTextGenerator(client).generate(PROMPT, CONFIG)

    assert exc_info.value.kind == ErrorKind.SERVICE_FAILURE
    assert "AccessDeniedException" in exc_info.value.cause


def test_generate_timeout_becomes_generation_error():
    client = MagicMock()
    client.invoke_model.side_effect = ReadTimeoutError(endpoint_url="https://bedrock-runtime.us-east-1.amazonaws.com/")

    with pytest.raises(GenerationError, match="Read timeout"):
        BedrockTextGenerator(client).generate(PROMPT, CONFIG)


def test_generate_missing_results_becomes_generation_error():
    client = MagicMock()
    client.invoke_model.return_value = {"body": _streaming({"results": []})}

    with pytest.raises(GenerationError, match="malformed"):
        BedrockTextGenerator(client).generate(PROMPT, CONFIG)


def test_generate_invalid_json_becomes_generation_error():
    client = MagicMock()
    client.invoke_model.return_value = {"body": StreamingBody(io.BytesIO(b"<html>"), 6)}

    with pytest.raises(GenerationError, match="invalid JSON"):
        BedrockTextGenerator(client).generate(PROMPT, CONFIG)
