import os

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@pytest.fixture(autouse=True)
def run_from_repo_root(monkeypatch):
    # example programs are opened relative to the repository root
    monkeypatch.chdir(ROOT)
