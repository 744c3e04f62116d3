"""
Pytest Configuration and Shared Fixtures

Every fixture here talks to the in-process fake service through
httpx.MockTransport; nothing leaves the process.
"""

import tempfile
from pathlib import Path

import pytest

from cfpflow.config import FlowSettings
from cfpflow.evaluator import ExpectationEvaluator
from cfpflow.executor import RequestExecutor
from cfpflow.types import StepResult, TestUser
from tests.fixtures.fake_cfp_server import FakeCfpServer

FAKE_BASE_URL = "http://cfp.test"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_path:
        yield Path(temp_path)


@pytest.fixture
def settings(temp_dir) -> FlowSettings:
    return FlowSettings(
        base_url=FAKE_BASE_URL,
        timeout_ms=5_000,
        get_retries=0,
        max_response_time_ms=None,
        reports_dir=str(temp_dir / "reports"),
        user_email=None,
        user_password=None,
        _env_file=None,
    )


@pytest.fixture
def fake_server() -> FakeCfpServer:
    return FakeCfpServer()


@pytest.fixture
def executor(settings, fake_server):
    with RequestExecutor(settings, transport=fake_server.transport()) as ex:
        yield ex


@pytest.fixture
def evaluator() -> ExpectationEvaluator:
    return ExpectationEvaluator()


@pytest.fixture
def test_user() -> TestUser:
    return TestUser(
        username="maria_teste",
        email="maria.teste@example.com",
        password="S3nha-Forte!",
        phone="5511999990000",
    )


@pytest.fixture
def ok_result() -> StepResult:
    """A typical successful category creation response."""
    return StepResult(
        method="POST",
        path="/category/addCategory",
        status_code=200,
        headers={"content-type": "application/json; charset=utf-8", "x-powered-by": "Express"},
        body={
            "success": True,
            "message": "Category added successfully",
            "categoryId": "65f1c0ffee",
            "createdAt": "2024-08-15T10:00:00Z",
        },
        text='{"success":true,"message":"Category added successfully","categoryId":"65f1c0ffee"}',
        elapsed_ms=120,
    )
