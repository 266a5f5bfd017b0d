#!/usr/bin/env python3
"""Shared pytest fixtures for the raypool test suite."""

import pytest
import pathlib
import sys
from typing import Dict, List, Optional
from unittest.mock import MagicMock, patch

# Add parent directory to path for imports
sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))

from tests.fixtures.generate_test_data import (
    WSOL,
    make_pool,
    make_token,
    pool_document,
    token_document,
)


# ============================================================================
# Document Fixtures
# ============================================================================

@pytest.fixture
def token_bytes() -> bytes:
    """Token directory where TOK appears once and USDC twice."""
    return token_document(
        [make_token("USDC", mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"),
         make_token("TOK", mint="TOK", decimals=9)],
        [make_token("USDC", mint="FakeUsdcMint111111111111111111111111111111"),
         make_token("RAY", mint="4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R")],
    )


@pytest.fixture
def pool_bytes() -> bytes:
    """Pool document with one official and one unofficial TOK/SOL pair."""
    return pool_document(
        [make_pool("p1", "TOK"),
         make_pool("p2", "RAY", "USDC")],
        [make_pool("p3", WSOL, "TOK"),
         make_pool("p4", "TOK", "USDC")],
    )


@pytest.fixture
def token_file(tmp_path, token_bytes) -> pathlib.Path:
    path = tmp_path / "tokens.json"
    path.write_bytes(token_bytes)
    return path


@pytest.fixture
def pool_file(tmp_path, pool_bytes) -> pathlib.Path:
    path = tmp_path / "pools.json"
    path.write_bytes(pool_bytes)
    return path


@pytest.fixture
def output_file(tmp_path) -> pathlib.Path:
    return tmp_path / "out" / "trimmed_mainnet.json"


# ============================================================================
# Fakes
# ============================================================================

class InMemoryAggregateRepository:
    """Aggregate repository that keeps the serialized bytes in memory."""

    def __init__(self, data: Optional[bytes] = None):
        self.data = data
        self.saves = 0

    def load(self):
        from pool_core.aggregate import load_aggregate
        if self.data is None:
            return None
        return load_aggregate(self.data)

    def save(self, aggregate):
        from pool_core.aggregate import dump_aggregate
        self.data = dump_aggregate(aggregate)
        self.saves += 1


class RecordingObserver:
    """Progress observer that remembers every call."""

    def __init__(self):
        self.calls: List[tuple] = []

    def section_started(self, document, section):
        self.calls.append(("started", document, section))

    def progress(self, document, section, count):
        self.calls.append(("progress", document, section, count))

    def section_finished(self, document, section, count):
        self.calls.append(("finished", document, section, count))

    def record_matched(self, document, section, record):
        self.calls.append(("matched", document, section, record))

    def of(self, kind):
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def memory_repository():
    return InMemoryAggregateRepository()


@pytest.fixture
def recording_observer():
    return RecordingObserver()


# ============================================================================
# Mock Fixtures
# ============================================================================

@pytest.fixture
def mock_requests():
    """Patch requests.get in the acquisition module."""
    with patch('op1_fetch.acquire.requests.get') as mock_get:
        yield mock_get


@pytest.fixture
def fake_response():
    """Build a streaming response mock yielding ``chunks``."""
    def build(chunks, status_code: int = 200) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.iter_content.return_value = iter(chunks)
        response.__enter__.return_value = response
        return response
    return build


@pytest.fixture
def clean_environment(monkeypatch):
    """Ensure a clean environment for tests."""
    for var in ['RAYPOOL_OUTPUT', 'RAYPOOL_POOLS_URL', 'RAYPOOL_TOKENS_URL',
                'RAYPOOL_TMP_DIR', 'RAYPOOL_QUOTE_MINT', 'RAYPOOL_LOG_LEVEL']:
        monkeypatch.delenv(var, raising=False)
    yield


# ============================================================================
# Performance Testing Fixtures
# ============================================================================

@pytest.fixture
def memory_profiler():
    """Setup memory profiling for tests."""
    try:
        from memory_profiler import memory_usage
    except ImportError:
        pytest.skip("memory_profiler not installed")

    def profile_memory(func, *args, **kwargs) -> Dict[str, float]:
        """Profile memory usage of a function."""
        mem_usage = memory_usage((func, args, kwargs), interval=0.05)
        return {
            "min": min(mem_usage),
            "max": max(mem_usage),
            "avg": sum(mem_usage) / len(mem_usage)
        }

    return profile_memory


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")
    config.addinivalue_line("markers", "benchmark: marks benchmark tests")
