import os
import pytest
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
# sessions must stay in memory unless a test injects a client
for _name in ('REDIS_URL', 'REDIS_HOST'):
    os.environ.pop(_name, None)


@pytest.fixture
def mock_redis_client():
    from tests.fixtures.mock_redis import MockRedisClient
    return MockRedisClient()


@pytest.fixture
def sample_transcript():
    from tests.fixtures.sample_data import transcript
    return transcript()


@pytest.fixture
def recording_sleep():
    from tests.fixtures.sample_data import RecordingSleep
    return RecordingSleep()


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / 'lecture.m4a'
    path.write_bytes(b'\x00\x00\x00\x18ftypM4A fake audio')
    return path
