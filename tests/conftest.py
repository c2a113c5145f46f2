"""
Shared test fixtures.

Every test runs in an empty temporary directory with no S3_PROXY_*
variables set, so a developer's own .env, s3-proxy.toml or shell
environment can't leak into Settings().
"""

import os

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("S3_PROXY_"):
            monkeypatch.delenv(name)
    return tmp_path
