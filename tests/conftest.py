"""Test configuration utilities and shared fixtures."""

import sys
from pathlib import Path

# Ensure the ``src`` directory is importable when tests are executed without an
# editable install.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import pytest  # noqa: E402
from flask import Flask  # noqa: E402
from flask.testing import FlaskClient  # noqa: E402

from directortax.backend.app import create_app  # noqa: E402
from directortax.backend.config.schema import RateTable  # noqa: E402
from directortax.backend.config.year_config import load_rate_table  # noqa: E402


@pytest.fixture()
def app() -> Flask:
    """Return a configured Flask application with fresh in-memory stores."""

    application = create_app()
    application.config.update(TESTING=True)
    return application


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Provide a test client bound to the configured Flask app."""

    return app.test_client()


@pytest.fixture()
def rates() -> RateTable:
    """The 2024-25 rate table most engine tests are written against."""

    return load_rate_table("2024-25")
