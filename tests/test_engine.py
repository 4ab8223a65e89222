import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from vocabventure.config.settings import settings
from vocabventure.services.auth_service import DUPLICATE_ACCOUNT_MESSAGE, LOGIN_FAILED_MESSAGE
from vocabventure.services.progress_service import ProgressService
from vocabventure.utils.exceptions import NotFoundError


@pytest.mark.asyncio
async def test_register_and_login(reading_engine):
    registered = await reading_engine.register("Mia", "2018-04-02")
    assert registered["success"] is True
    user_id = registered["userId"]

    duplicate = await reading_engine.register("Mia", "2018-04-02")
    assert duplicate == {"success": False, "message": DUPLICATE_ACCOUNT_MESSAGE}

    # 同名不同生日是另一个账号
    sibling = await reading_engine.register("Mia", "2020-01-15")
    assert sibling["success"] is True
    assert sibling["userId"] != user_id

    logged_in = await reading_engine.login("Mia", "2018-04-02")
    assert logged_in["success"] is True
    assert logged_in["user"]["id"] == user_id

    failed = await reading_engine.login("Mia", "1999-01-01")
    assert failed == {"success": False, "message": LOGIN_FAILED_MESSAGE}

    assert (await reading_engine.get_user(user_id))["username"] == "Mia"
    assert await reading_engine.get_user(999) is None


@pytest.mark.asyncio
async def test_dispatch_by_method_name(reading_engine):
    assert await reading_engine.dispatch("progress.getLastViewed", {"userId": 1, "storyId": 1}) == 0

    ack = await reading_engine.dispatch("progress.saveLastViewed", {"userId": 1, "storyId": 1, "segmentId": 6})
    assert ack == {"success": True}
    assert await reading_engine.dispatch("progress.getLastViewed", {"userId": 1, "storyId": 1}) == 6

    award = await reading_engine.dispatch(
        "badge.award", {"userId": 1, "storyId": 1, "badgeType": "silver", "badgeCategory": "quiz-1"}
    )
    assert award == {"success": True, "change": "inserted"}
    assert await reading_engine.dispatch(
        "badge.has", {"userId": 1, "storyId": 1, "category": "quiz-1"}
    ) is True


@pytest.mark.asyncio
async def test_dispatch_unknown_method(reading_engine):
    with pytest.raises(NotFoundError):
        await reading_engine.dispatch("progress.teleport", {})


@pytest.mark.asyncio
async def test_dispatch_rejects_invalid_params(reading_engine):
    with pytest.raises(ValidationError):
        await reading_engine.dispatch("quiz.save", {"userId": 1, "storyId": 1, "quizNumber": 3,
                                                    "score": 4, "totalQuestions": 5})
    with pytest.raises(ValidationError):
        await reading_engine.dispatch("badge.award", {"userId": 1, "storyId": 1, "tier": "platinum"})


@pytest.mark.asyncio
async def test_dispatch_rejects_score_above_total(reading_engine):
    """得分不能超过总题数，不会写入作答记录"""
    with pytest.raises(ValidationError):
        await reading_engine.dispatch("quiz.save", {"userId": 1, "storyId": 1, "quizNumber": 1,
                                                    "score": 7, "totalQuestions": 5})
    assert await reading_engine.get_quiz_results(1, 1) == []


def test_methods_listing(reading_engine):
    assert "progress.getBulkCompletionStatus" in reading_engine.methods
    assert "badge.getAllOrdered" in reading_engine.methods


@pytest.mark.asyncio
async def test_story_badge_progression(reading_engine):
    """读完故事 bronze，测验1及格 silver，测验2及格 gold"""
    completed = await reading_engine.complete_story(1, 1, 3)
    assert completed == {"success": True, "change": "inserted"}

    failed = await reading_engine.finish_quiz(1, 1, 1, 2, 5)
    assert failed == {"success": True, "badgeType": "bronze", "passed": False, "storyBadge": None}

    passed = await reading_engine.finish_quiz(1, 1, 1, 4, 5)
    assert passed == {"success": True, "badgeType": "silver", "passed": True, "storyBadge": "silver"}

    perfect = await reading_engine.finish_quiz(1, 1, 2, 5, 5)
    assert perfect["storyBadge"] == "gold"

    badges = {badge["badge_category"]: badge["badge_type"]
              for badge in await reading_engine.get_story_badges(1, 1)}
    assert badges == {"story-completion": "gold", "quiz-1": "silver", "quiz-2": "gold"}
    assert await reading_engine.get_badge_stats(1) == {"gold": 2, "silver": 1, "bronze": 0, "total": 3}

    assert len(await reading_engine.get_quiz_results(1, 1)) == 3
    assert (await reading_engine.get_best_score(1, 1, 1))["bestScore"] == 4

    status = await reading_engine.get_completion_status(1, 1, 3)
    assert status["storyCompleted"] is True
    assert status["quiz1Completed"] is True
    assert status["quiz2Completed"] is True


@pytest.mark.asyncio
async def test_save_quiz_returns_badge_type(reading_engine):
    assert await reading_engine.save_quiz(1, 1, 1, 3, 5) == "silver"
    assert await reading_engine.get_badge_stats(1) == {"gold": 0, "silver": 0, "bronze": 0, "total": 0}


@pytest.mark.asyncio
async def test_database_error_becomes_friendly_failure(reading_engine, monkeypatch):
    """底层错误不会泄露给界面"""
    def broken(self, user_id, story_id, segment_id):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(ProgressService, "mark_segment_viewed", broken)

    result = await reading_engine.mark_viewed(1, 1, 1)
    assert result == {"success": False, "message": settings.FRIENDLY_RETRY_MESSAGE}
    assert "locked" not in result["message"]


@pytest.mark.asyncio
async def test_reads_fall_back_to_empty_values(reading_engine, monkeypatch):
    def broken(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("no such table"))

    monkeypatch.setattr(ProgressService, "get_resume_point", broken)
    monkeypatch.setattr(ProgressService, "get_bulk_completion_status", broken)

    assert await reading_engine.get_last_viewed(1, 1) == 0
    assert await reading_engine.get_bulk_completion_status(1) == {}
