import pytest

from config import Settings
from helpers import SleepRecorder


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def settings():
    return Settings(
        base_api_url="https://base.example/api?address=",
        eth_api_url="https://eth.example/api?address=",
        base_internal_api_url="https://base.example/internal?address=",
        max_retries=3,
        initial_delay=0.5,
    )
