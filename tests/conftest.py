from pathlib import Path

import pytest

from taskboard.services.config import AppConfig
from taskboard.services.documents import DocumentStore


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(document_root=tmp_path / "vault")


@pytest.fixture
def store(app_config: AppConfig) -> DocumentStore:
    return DocumentStore(config=app_config)
