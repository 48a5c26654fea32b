"""Pytest configuration and fixtures."""

import json
import os
from concurrent.futures import Future
from unittest.mock import MagicMock, patch

import pytest

# Set environment variables before imports
os.environ["TABLE_NAME"] = "leadfunnel-test"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ.pop("N8N_WEBHOOK_URL", None)
os.environ.pop("N8N_WEBHOOK_API_KEY", None)
os.environ.pop("RELAY_QUEUE_URL", None)


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create mocked DynamoDB table."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        table = dynamodb.create_table(
            TableName="leadfunnel-test",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "GSI1PK", "AttributeType": "S"},
                {"AttributeName": "GSI1SK", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "GSI1",
                    "KeySchema": [
                        {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                        {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        table.wait_until_exists()

        yield table


@pytest.fixture
def sample_questions():
    """Single-choice question followed by one email contact question."""
    from leadfunnel.models.question import Question

    return [
        Question.model_validate(
            {
                "id": "q1",
                "type": "single",
                "question": "What describes you best?",
                "options": ["Option A", "Option B"],
            }
        ),
        Question.model_validate(
            {"id": "email", "type": "contact", "contactKind": "email", "label": "Email"}
        ),
    ]


@pytest.fixture
def sample_tenant(sample_questions):
    """Tenant with a thank-you CTA."""
    from leadfunnel.models.tenant import Tenant, TenantConfig

    return Tenant(
        id="test-tenant-123",
        name="Test Tenant",
        config=TenantConfig.model_validate(
            {
                "steps": ["hero", "questions", "result"],
                "cta": {"type": "thank_you", "message": "Thanks!"},
            }
        ),
        questions=sample_questions,
    )


@pytest.fixture
def consent_config():
    """Config requiring consent through an external privacy policy."""
    from leadfunnel.models.tenant import TenantConfig

    return TenantConfig.model_validate(
        {
            "steps": ["questions", "result"],
            "privacyPolicy": {"mode": "external", "url": "https://example.com/privacy"},
            "cta": {"type": "thank_you", "message": "Thanks!"},
        }
    )


@pytest.fixture
def mock_sqs():
    """Mock SQS client."""
    with patch("boto3.client") as mock_client:
        mock_sqs = MagicMock()
        mock_client.return_value = mock_sqs

        mock_sqs.send_message.return_value = {
            "MessageId": "test-message-id",
        }

        yield mock_sqs


class FakeIntakeClient:
    """In-memory IntakeClient recording every call."""

    def __init__(self, submit_response=None, status_responses=None, submit_error=None):
        self.sent: list[dict] = []
        self.submitted: list[dict] = []
        self.polled: list[str] = []
        self.submit_response = submit_response or {"ok": True, "useCtaConfig": True}
        self.status_responses = list(status_responses or [])
        self.submit_error = submit_error

    @property
    def beacons(self) -> list[dict]:
        return [p for p in self.sent if p["event"] == "progress"]

    def send(self, payload):
        self.sent.append(payload)
        future = Future()
        future.set_result(None)
        return future

    def submit(self, payload):
        self.submitted.append(payload)
        if self.submit_error is not None:
            raise self.submit_error
        return self.submit_response

    def poll_status(self, job_id):
        self.polled.append(job_id)
        return self.status_responses.pop(0)


@pytest.fixture
def fake_client():
    """Create a recording intake client."""
    return FakeIntakeClient()


def public_event(
    method="GET",
    path="/",
    query_params=None,
    body=None,
    headers=None,
    source_ip="1.2.3.4",
):
    """Build an API Gateway event for public (unauthenticated) endpoints."""
    return {
        "httpMethod": method,
        "path": path,
        "pathParameters": {},
        "queryStringParameters": query_params or {},
        "body": body if isinstance(body, str) or body is None else json.dumps(body),
        "headers": headers or {"Content-Type": "application/json"},
        "requestContext": {
            "identity": {"sourceIp": source_ip},
        },
    }


@pytest.fixture
def api_gateway_event():
    """Create a public API Gateway event."""
    return public_event


class LambdaContext:
    """Mock Lambda context."""

    def __init__(self):
        self.function_name = "test-function"
        self.memory_limit_in_mb = 128
        self.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789:function:test"
        self.aws_request_id = "test-request-id"

    def get_remaining_time_in_millis(self):
        return 30000


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context."""
    return LambdaContext()


@pytest.fixture
def make_client():
    """Factory for recording intake clients with canned responses."""
    return FakeIntakeClient
