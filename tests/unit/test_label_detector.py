"""RekognitionLabelDetector tests using botocore's Stubber"""
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError, ReadTimeoutError
from botocore.stub import Stubber

from image_pipeline import DetectionError, ErrorKind, ImagePayload, RekognitionLabelDetector

IMAGE = ImagePayload(data=b"\x89PNG fake bytes", content_type="image/png")


@pytest.fixture
def rekognition():
    client = boto3.client(
        "rekognition",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )
    with Stubber(client) as stubber:
        yield client, stubber
        stubber.assert_no_pending_responses()


def _labels(*pairs):
    return {"Labels": [{"Name": name, "Confidence": confidence} for name, confidence in pairs]}


def test_detect_sends_image_bytes_and_limits(rekognition):
    client, stubber = rekognition
    stubber.add_response(
        "detect_labels",
        _labels(("Cat", 95.0)),
        expected_params={"Image": {"Bytes": IMAGE.data}, "MaxLabels": 10, "MinConfidence": 80.0},
    )

    concepts = RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)

    assert concepts.names() == ["Cat"]


def test_detect_preserves_service_order(rekognition):
    client, stubber = rekognition
    stubber.add_response("detect_labels", _labels(("Cat", 95.0), ("Animal", 90.0), ("Pet", 82.0)))

    concepts = RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)

    assert concepts.names() == ["Cat", "Animal", "Pet"]
    assert [c.confidence for c in concepts] == [95.0, 90.0, 82.0]


def test_detect_keeps_tie_order_from_service(rekognition):
    client, stubber = rekognition
    stubber.add_response("detect_labels", _labels(("Tree", 90.0), ("Plant", 90.0)))

    concepts = RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)

    assert concepts.names() == ["Tree", "Plant"]


def test_detect_empty_result_is_not_an_error(rekognition):
    client, stubber = rekognition
    stubber.add_response("detect_labels", {"Labels": []})

    concepts = RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)

    assert len(concepts) == 0
    assert not concepts


def test_detect_enforces_threshold_and_max_on_response(rekognition):
    client, stubber = rekognition
    stubber.add_response(
        "detect_labels",
        _labels(("Cat", 99.0), ("Animal", 97.0), ("Blur", 40.0), ("Pet", 96.0)),
    )

    concepts = RekognitionLabelDetector(client).detect(IMAGE, 2, 80.0)

    assert concepts.names() == ["Cat", "Animal"]


def test_detect_client_error_becomes_detection_error(rekognition):
    client, stubber = rekognition
    stubber.add_client_error(
        "detect_labels",
        service_error_code="InvalidImageFormatException",
        service_message="Request has invalid image format",
        http_status_code=400,
    )

    with pytest.raises(DetectionError) as exc_info:
        RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)

    error = exc_info.value
    assert error.kind == ErrorKind.SERVICE_FAILURE
    assert "InvalidImageFormatException" in error.cause
    assert "Request has invalid image format" in error.cause
    assert error.status_code == 500


def test_detect_timeout_becomes_detection_error():
    client = MagicMock()
    client.detect_labels.side_effect = ReadTimeoutError(endpoint_url="https://rekognition.us-east-1.amazonaws.com/")

    with pytest.raises(DetectionError) as exc_info:
        RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)

    assert "Read timeout" in exc_info.value.cause


def test_detect_connection_failure_becomes_detection_error():
    client = MagicMock()
    client.detect_labels.side_effect = EndpointConnectionError(endpoint_url="https://rekognition.us-east-1.amazonaws.com/")

    with pytest.raises(DetectionError):
        RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)


def test_detect_malformed_response_becomes_detection_error():
    client = MagicMock()
    client.detect_labels.return_value = {"Unexpected": True}

    with pytest.raises(DetectionError, match="malformed"):
        RekognitionLabelDetector(client).detect(IMAGE, 10, 80.0)


def test_detect_out_of_range_confidence_becomes_detection_error():
    client = MagicMock()
    client.detect_labels.return_value = _labels(("Cat", 140.0))

    with pytest.raises(DetectionError, match="malformed"):
        RekognitionLabelDetector(client).detect(IMAGE, 10, 0.0)


def test_detect_rejects_max_labels_below_one():
    client = MagicMock()

    with pytest.raises(ValueError, match="max_labels"):
        RekognitionLabelDetector(client).detect(IMAGE, 0, 80.0)

    client.detect_labels.assert_not_called()
