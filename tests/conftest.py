import pytest
from datetime import datetime, timezone


@pytest.fixture
def store():
    from earlyjob.db import JobStore

    return JobStore(":memory:")


@pytest.fixture
def fixed_now():
    return datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def sample_job_data():
    return {
        "title": "Backend Engineer",
        "company_name": "Acme Corp",
        "location": "Remote",
        "description": "Python, PostgreSQL, AWS",
        "source_type": "adzuna",
        "source_url": "https://example.com/jobs/12345",
        "external_id": "12345",
        "is_remote": True,
        "remote_type": "fully_remote",
        "tech_stack": ["python", "postgresql", "aws"],
    }


@pytest.fixture
def make_job(sample_job_data):
    from earlyjob.hashing import fingerprint
    from earlyjob.models import JobPost

    def _make(**overrides):
        data = {**sample_job_data, **overrides}
        data.setdefault(
            "dedup_hash",
            fingerprint(data["title"], data["company_name"], data["location"]),
        )
        return JobPost(**data)

    return _make
