from __future__ import annotations

import os

import django
import pytest
from requests_mock import Mocker


os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")

django.setup()


@pytest.fixture
def requests_mock():
    with Mocker() as mock:
        yield mock
