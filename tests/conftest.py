import pytest
from fastapi.testclient import TestClient

from database.store import SocialStore
from main import create_app
from utils.config import AppConfig
from utils.database_manager import DatabaseManager


@pytest.fixture
def env(monkeypatch, tmp_path):
    """필수 환경변수가 모두 설정된 상태"""
    values = {
        'ENVIRONMENT': 'test',
        'DEBUG': 'False',
        'SECRET_KEY': 'x' * 40,
        'DATABASE_URL': f"sqlite:///{tmp_path / 'test.db'}",
        'DATABASE_POOL_SIZE': '2',
        'DATABASE_TIMEOUT': '1',
        'IMAGEKIT_PUBLIC_KEY': 'public_test',
        'IMAGEKIT_PRIVATE_KEY': 'private_test',
        'IMAGEKIT_URL_ENDPOINT': 'https://ik.example.com/demo',
        'UPLOAD_DIR': str(tmp_path / 'uploads'),
        'LOG_FILE': '',
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return values


@pytest.fixture
def config(env):
    return AppConfig(load_env_file=False)


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(str(tmp_path / 'store.db'), pool_size=2, timeout=1)
    manager.initialize_database()
    yield manager
    manager.close()


@pytest.fixture
def store(db_manager):
    return SocialStore(db_manager)


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def registered_user(client):
    """회원가입된 사용자 (id, email, password)"""
    client.post('/register', data={'username': 'alice', 'email': 'alice@example.com', 'password': 'secret1'})
    user = client.app.state.store.authenticate('alice@example.com', 'secret1')
    return user
