"""
Pytest configuration and shared fixtures for JYHNet tests.

This module provides reusable fixtures and test utilities used across
the test suite. No test touches the real network: HTTP is mocked with
requests_mock and reachability is replaced by StubReachability.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from jyhnet.client import NetworkClient, set_shared_client
from jyhnet.config import ClientConfig
from jyhnet.logging import SilentLogger, set_global_logger


class StubReachability:
    """Reachability replacement with a fixed answer and a call counter."""

    def __init__(self, online: bool = True) -> None:
        self.online = online
        self.calls = 0

    def have_network(self) -> bool:
        self.calls += 1
        return self.online


@pytest.fixture(autouse=True)
def _reset_globals():
    """Keep global logger and shared client from leaking between tests."""
    yield
    set_global_logger(SilentLogger())
    set_shared_client(None)


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def download_dir(tmp_test_dir: Path) -> Path:
    return tmp_test_dir / "downloads"


@pytest.fixture
def online() -> StubReachability:
    return StubReachability(online=True)


@pytest.fixture
def offline() -> StubReachability:
    return StubReachability(online=False)


@pytest.fixture
def make_client(download_dir: Path, online: StubReachability):
    """
    Factory fixture for clients wired to a stub reachability.

    Usage:
        client = make_client(chunk_size=4)
        client = make_client(reachability=StubReachability(False))
    """
    created: list[NetworkClient] = []

    def _create(reachability: Any = None, **config_values: Any) -> NetworkClient:
        config_values.setdefault("download_dir", download_dir)
        client = NetworkClient(
            ClientConfig(**config_values),
            reachability=reachability or online,
        )
        created.append(client)
        return client

    yield _create
    for client in created:
        client.close()


@pytest.fixture
def client(make_client) -> NetworkClient:
    return make_client()


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("jyhnet.yaml", {"client": {"timeout": 5}})
    """

    def _create(filename: str, data: Any) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create


@pytest.fixture
def category_envelope() -> dict[str, Any]:
    """Envelope returned by the demo backend for a single category."""
    return {
        "Status": 0,
        "Data": [{"id": "1", "name": "Math", "info": "desc"}],
    }
