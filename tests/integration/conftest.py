#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Pytest fixtures for integration tests.

Provides:
- app: Application wired to fake backends and a temporary data directory
- client: TestClient with startup/shutdown events running
- wait_for_job: Poll a job until it is COMPLETED or FAILED
"""

import time
import pytest
from fastapi.testclient import TestClient

from api.main import create_app


@pytest.fixture
def app(test_settings, fake_provider, fake_converter, renderer):
    return create_app(
        settings=test_settings,
        provider=fake_provider,
        converter=fake_converter,
        renderer=renderer,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def wait_for_job(client):
    def _wait(job_id: str, timeout: float = 5.0) -> dict:
        deadline = time.time() + timeout
        while time.time() < deadline:
            snapshot = client.get(f"/api/jobs/{job_id}").json()
            if snapshot["status"] in ("COMPLETED", "FAILED"):
                return snapshot
            time.sleep(0.02)
        raise AssertionError(f"job {job_id} did not finish within {timeout}s")
    return _wait
