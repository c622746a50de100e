"""Shared fixtures for the test suite."""
import os
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def aws_credentials():
    """Point boto3 at fake credentials so nothing reaches real AWS."""
    env_vars = {
        'AWS_ACCESS_KEY_ID': 'testing',
        'AWS_SECRET_ACCESS_KEY': 'testing',
        'AWS_SECURITY_TOKEN': 'testing',
        'AWS_SESSION_TOKEN': 'testing',
        'AWS_DEFAULT_REGION': 'us-east-1'
    }
    with patch.dict(os.environ, env_vars):
        yield


@pytest.fixture
def no_sleep():
    """Skip the fetcher's polite delay and retry backoff."""
    with patch('scraper.page_fetcher.time.sleep') as mock_sleep:
        yield mock_sleep
