import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from vocabventure.main import create_application
from vocabventure.services.engine_service import ReadingEngine
from vocabventure.utils.database import LocalStore

# 早期版本的表结构：quiz_results 没有 quiz_number / badge_type，
# user_badges 只有自由文本 badge_id，progress 没有 last_viewed_segment
LEGACY_SCHEMA = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL,
        birthdate TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(username, birthdate)
    )
    """,
    """
    CREATE TABLE progress (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        story_id INTEGER,
        segment_id INTEGER,
        completed BOOLEAN DEFAULT 0,
        completed_at DATETIME,
        UNIQUE(user_id, story_id, segment_id)
    )
    """,
    """
    CREATE TABLE quiz_results (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        story_id INTEGER,
        score INTEGER,
        total_questions INTEGER,
        completed_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE user_badges (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        badge_id TEXT,
        earned_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, badge_id)
    )
    """,
]

LEGACY_ROWS = [
    "INSERT INTO users (id, username, birthdate) VALUES (1, 'Mia', '2018-04-02')",
    "INSERT INTO progress (user_id, story_id, segment_id, completed, completed_at) "
    "VALUES (1, 1, 1, 1, '2024-03-01 09:00:00')",
    "INSERT INTO progress (user_id, story_id, segment_id, completed, completed_at) "
    "VALUES (1, 1, 2, 1, '2024-03-01 09:05:00')",
    "INSERT INTO quiz_results (id, user_id, story_id, score, total_questions, completed_at) "
    "VALUES (1, 1, 1, 5, 5, '2024-03-01 10:00:00')",
    "INSERT INTO quiz_results (id, user_id, story_id, score, total_questions, completed_at) "
    "VALUES (2, 1, 2, 3, 5, '2024-03-02 10:00:00')",
    "INSERT INTO quiz_results (id, user_id, story_id, score, total_questions, completed_at) "
    "VALUES (3, 1, 3, 1, 5, '2024-03-03 10:00:00')",
    "INSERT INTO user_badges (id, user_id, badge_id, earned_at) "
    "VALUES (1, 1, 'story-2-gold-quiz1', '2024-03-01 10:00:00')",
    "INSERT INTO user_badges (id, user_id, badge_id, earned_at) "
    "VALUES (2, 1, 'story1-complete', '2024-03-01 11:00:00')",
    "INSERT INTO user_badges (id, user_id, badge_id, earned_at) "
    "VALUES (3, 1, 'story-3-silver-quiz2', '2024-03-02 11:00:00')",
]


def sqlite_url(path) -> str:
    return f"sqlite:///{path}"


@pytest.fixture
def database_url(tmp_path):
    """每个测试使用独立的临时数据库文件"""
    return sqlite_url(tmp_path / "test.db")


@pytest.fixture
def store(database_url):
    store = LocalStore(database_url).open()
    yield store
    store.close()


@pytest.fixture
def db_session(store):
    with store.session() as db:
        yield db


@pytest.fixture
def reading_engine(store):
    return ReadingEngine(store)


@pytest.fixture
def legacy_database_url(tmp_path):
    """创建旧版结构的数据库并写入样例数据"""
    url = sqlite_url(tmp_path / "legacy.db")
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in LEGACY_SCHEMA + LEGACY_ROWS:
            conn.execute(text(statement))
    engine.dispose()
    return url


@pytest.fixture
def client(database_url):
    """创建测试客户端，生命周期内完成建表"""
    app = create_application(database_url=database_url, configure_logging=False)
    with TestClient(app) as client:
        yield client
