import pytest
from unittest.mock import Mock


def make_response(status_code=200, body=None, headers=None, invalid_json=False):
    """
    Build a requests.Response stand-in.
    `invalid_json=True` makes .json() raise like requests does on a garbage body.
    """
    response = Mock(status_code=status_code, headers=headers or {})
    if invalid_json:
        response.json = Mock(side_effect=ValueError("Expecting value: line 1 column 1"))
    else:
        response.json = Mock(return_value=body if body is not None else {})
    return response


@pytest.fixture
def response_factory():
    return make_response


@pytest.fixture
def sleeps():
    """Records every wait instead of sleeping."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def sample_patients() -> list[dict]:
    """
    A small mixed collection: clean, high-risk, feverish and malformed records.
    """
    return [
        {"patient_id": "DEMO001", "name": "TestPatient, John", "blood_pressure": "120/80", "temperature": 98.6, "age": 45},
        {"patient_id": "DEMO002", "blood_pressure": "150/95", "temperature": 99.0, "age": 70},
        {"patient_id": "DEMO003", "blood_pressure": "INVALID_BP_FORMAT", "temperature": 102, "age": "30"},
        {"patient_id": "DEMO004", "blood_pressure": "110/70", "temperature": "TEMP_ERROR", "age": None},
        {"patient_id": "DEMO005", "blood_pressure": "135/85", "temperature": 100.2, "age": 66},
    ]
