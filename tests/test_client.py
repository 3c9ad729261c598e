"""
Tests for DemoMedClient with a Mock session standing in for requests.Session.
"""

import pytest
import requests
from unittest.mock import Mock

from medrisk.client import DemoMedClient
from medrisk.config import ClientConfig
from medrisk.report import AssessmentReport
from medrisk.requester import NetworkOrParseError, RateLimitExceeded, RetryPolicy


@pytest.fixture
def config():
    return ClientConfig(api_key="secret", base_url="https://example.test/api")


def make_client(config, session, sleeps=None, **kwargs):
    record = sleeps.append if sleeps is not None else (lambda seconds: None)
    return DemoMedClient(config, session=session, sleep=record, **kwargs)


def test_api_key_goes_on_the_session(config):
    session = Mock()
    make_client(config, session)
    session.headers.update.assert_called_once_with({"x-api-key": "secret"})


def test_page_url(config):
    client = make_client(config, Mock())
    assert client.page_url(3) == "https://example.test/api/patients?limit=20&page=3"


def test_fetch_all_patients_walks_pages_through_retries(config, response_factory):
    sleeps = []
    session = Mock()
    session.get.side_effect = [
        response_factory(200, {"data": [{"patient_id": "A"}], "pagination": {"hasNext": True}}),
        response_factory(429, {"retry_after": 1}),
        response_factory(503),
        response_factory(200, {"patients": [{"patient_id": "B"}], "current_page": 2}),
        response_factory(200, {"data": [{"patient_id": "C"}], "pagination": {"hasNext": False}}),
    ]
    client = make_client(config, session, sleeps)

    patients = client.fetch_all_patients()

    assert [p.patient_id for p in patients] == ["A", "B", "C"]
    urls = [c.args[0] for c in session.get.call_args_list]
    assert urls == [
        "https://example.test/api/patients?limit=20&page=1",
        "https://example.test/api/patients?limit=20&page=2",
        "https://example.test/api/patients?limit=20&page=2",
        "https://example.test/api/patients?limit=20&page=2",
        "https://example.test/api/patients?limit=20&page=3",
    ]
    assert sleeps == [1.0, 0.5]


def test_rate_limit_exhaustion_aborts_collection(config, response_factory):
    session = Mock()
    session.get.side_effect = [response_factory(429, {}) for _ in range(5)]
    client = make_client(config, session, policy=RetryPolicy(max_retries=2))

    with pytest.raises(RateLimitExceeded):
        client.fetch_all_patients()
    assert session.get.call_count == 3


def test_retry_budget_defaults_to_config(response_factory):
    config = ClientConfig(api_key="k", base_url="https://example.test/api", max_retries=1)
    session = Mock()
    session.get.side_effect = [response_factory(429, {}) for _ in range(5)]

    with pytest.raises(RateLimitExceeded):
        make_client(config, session).fetch_all_patients()
    assert session.get.call_count == 2


def test_submit_assessment_posts_once(config, response_factory):
    session = Mock()
    session.post.return_value = response_factory(200, {"success": True, "results": {"score": 91.94}})
    client = make_client(config, session)
    report = AssessmentReport(["A"], ["B"], ["C"])

    body = client.submit_assessment(report)

    assert body["success"] is True
    session.post.assert_called_once_with(
        "https://example.test/api/submit-assessment",
        json={"high_risk_patients": ["A"], "fever_patients": ["B"], "data_quality_issues": ["C"]},
        headers={"Content-Type": "application/json"},
        timeout=30.0,
    )


def test_submit_assessment_does_not_retry_server_errors(config, response_factory):
    session = Mock()
    session.post.return_value = response_factory(503, {"error": "Service unavailable"})
    body = make_client(config, session).submit_assessment(AssessmentReport())
    assert body == {"error": "Service unavailable"}
    assert session.post.call_count == 1


def test_submit_assessment_transport_failure(config):
    session = Mock()
    session.post.side_effect = requests.Timeout("timed out")
    with pytest.raises(NetworkOrParseError):
        make_client(config, session).submit_assessment(AssessmentReport())


def test_submit_assessment_undecodable_response(config, response_factory):
    session = Mock()
    session.post.return_value = response_factory(502, invalid_json=True)
    with pytest.raises(NetworkOrParseError):
        make_client(config, session).submit_assessment(AssessmentReport())
