import logging
import os
import tempfile

import pytest

# keep app.log out of the working tree; must be set before server.api_server is imported
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="rass-tests-"))

from shared.helper.HelperConfig import HelperConfig
from shared.search.DocumentStore import DocumentStore

TEST_DIMENSION = 64


@pytest.fixture()
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("rass-tests"))


@pytest.fixture()
def store(helper_config: HelperConfig) -> DocumentStore:
    return DocumentStore(helper_config=helper_config, dimension=TEST_DIMENSION)


@pytest.fixture()
def backend_env(monkeypatch):
    """Configure a clean simulated backend through the environment."""
    for key in list(os.environ):
        if key.startswith("BACKEND_") or key == "APP_API_KEY":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("BACKEND_ENGINE", "simulated")
    monkeypatch.setenv("BACKEND_VECTOR_DIMENSION", str(TEST_DIMENSION))
    return monkeypatch
