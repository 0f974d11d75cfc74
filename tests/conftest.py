"""Pytest configuration for exifbridge tests."""

from __future__ import annotations

import logging

import pytest
import pytest_asyncio

from exifbridge.config.settings import RuntimeConfig
from exifbridge.protocol.sentinels import SentinelFactory
from exifbridge.services.session import ExifToolSession
from tests.mocks import FakeExifToolProcess

TEST_NONCE = 424242


@pytest.fixture()
def runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        executable="exiftool",
        poll_interval=0.0,
        read_timeout=2.0,
        close_timeout=0.5,
    )


@pytest_asyncio.fixture
async def fake_process() -> FakeExifToolProcess:
    return FakeExifToolProcess()


@pytest_asyncio.fixture
async def session(
    fake_process: FakeExifToolProcess,
    runtime_config: RuntimeConfig,
) -> ExifToolSession:
    return ExifToolSession(
        fake_process,  # type: ignore[arg-type]
        runtime_config,
        sentinels=SentinelFactory(nonce=TEST_NONCE),
    )


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    """Close and remove handlers installed by configure_logging."""
    yield
    pkg_logger = logging.getLogger("exifbridge")
    for handler in pkg_logger.handlers[:]:
        try:
            handler.close()
        except (OSError, RuntimeError):
            pass
        pkg_logger.removeHandler(handler)
    pkg_logger.propagate = True
    pkg_logger.setLevel(logging.NOTSET)
