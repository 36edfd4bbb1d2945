"""Pytest configuration for test isolation.

The CLI reads ``STATEMENT_ANALYSIS_ACCOUNT_TYPE`` and
``STATEMENT_ANALYSIS_LOG_LEVEL`` from the environment (and from a local
``.env`` via python-dotenv). A developer's shell or ``.env`` could otherwise
change which policy a test run infers, so every test starts with both unset
and runs from its own temporary working directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

_ENV_VARS = ("STATEMENT_ANALYSIS_ACCOUNT_TYPE", "STATEMENT_ANALYSIS_LOG_LEVEL")


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear package env vars and chdir into a per-test directory without a ``.env``."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    workdir = tmp_path / "cwd"
    workdir.mkdir(parents=True, exist_ok=True)
    monkeypatch.chdir(workdir)
