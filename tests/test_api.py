from sqlalchemy.exc import OperationalError

from vocabventure.config.settings import settings
from vocabventure.services.quiz_service import QuizService


def invoke(client, method, **params):
    return client.post("/api/v1/invoke", json={"method": method, "params": params})


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == settings.APP_NAME


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"
    assert body["legacy_mode"] is False


def test_invoke_register_and_login(client):
    response = invoke(client, "auth.register", name="Mia", birthdate="2018-04-02")
    assert response.status_code == 200
    result = response.json()["result"]
    assert result["success"] is True

    duplicate = invoke(client, "auth.register", name="Mia", birthdate="2018-04-02").json()["result"]
    assert duplicate["success"] is False

    login = invoke(client, "auth.login", name="Mia", birthdate="2018-04-02").json()["result"]
    assert login["user"]["id"] == result["userId"]


def test_invoke_reading_flow(client):
    for segment_id in (1, 2):
        assert invoke(client, "progress.markViewed", userId=1, storyId=4, segmentId=segment_id).json() == {
            "result": {"success": True}
        }
    invoke(client, "progress.saveLastViewed", userId=1, storyId=4, segmentId=2)

    assert invoke(client, "progress.getLastViewed", userId=1, storyId=4).json()["result"] == 2

    status = invoke(client, "progress.getCompletionStatus", userId=1, storyId=4, totalSegments=2).json()["result"]
    assert status["storyCompleted"] is True

    bulk = invoke(client, "progress.getBulkCompletionStatus", userId=1).json()["result"]
    assert bulk["4"]["completedSegments"] == 2


def test_invoke_unknown_method(client):
    response = invoke(client, "progress.teleport")
    assert response.status_code == 404
    assert "error" in response.json()


def test_invoke_invalid_params(client):
    response = invoke(client, "progress.markViewed", userId=1, storyId=1, segmentId=0)
    assert response.status_code == 422
    assert response.json()["error"][0]["loc"] == ["segmentId"]


def test_list_methods(client):
    methods = client.get("/api/v1/invoke/methods").json()["methods"]
    assert "quiz.save" in methods
    assert "badge.getStats" in methods


def test_rest_progress_routes(client):
    client.post("/api/v1/progress/viewed", json={"userId": 1, "storyId": 1, "segmentId": 1})
    client.post("/api/v1/progress/last-viewed", json={"userId": 1, "storyId": 1, "segmentId": 3})

    assert client.get("/api/v1/progress/1/stories/1/last-viewed").json() == {"segmentId": 3}

    status = client.get("/api/v1/progress/1/stories/1", params={"total_segments": 1}).json()
    assert status["completedSegments"] == 1
    assert status["storyCompleted"] is True

    default_status = client.get("/api/v1/progress/1/stories/1").json()
    assert default_status["totalSegments"] == settings.DEFAULT_TOTAL_SEGMENTS
    assert default_status["storyCompleted"] is False

    overall = client.get("/api/v1/progress/1/overall").json()
    assert overall["completed"] == 1


def test_rest_quiz_and_badge_routes(client):
    response = client.post("/api/v1/progress/complete-story", json={"userId": 1, "storyId": 2, "totalSegments": 3})
    assert response.json() == {"success": True, "change": "inserted"}

    saved = client.post("/api/v1/quizzes/results", json={
        "userId": 1, "storyId": 2, "quizNumber": 1, "score": 3, "totalQuestions": 5,
    })
    assert saved.json() == {"badgeType": "silver"}

    finished = client.post("/api/v1/quizzes/finish", json={
        "userId": 1, "storyId": 2, "quizNumber": 1, "score": 5, "totalQuestions": 5,
    }).json()
    assert finished["storyBadge"] == "silver"
    assert finished["badgeType"] == "gold"

    best = client.get("/api/v1/quizzes/1/stories/2/best", params={"quiz_number": 1}).json()
    assert best["bestScore"] == 5
    assert client.get("/api/v1/quizzes/1/stories/2/best", params={"quiz_number": 2}).status_code == 404

    assert len(client.get("/api/v1/quizzes/1/results", params={"story_id": 2}).json()) == 2

    assert client.get("/api/v1/badges/1/stats").json() == {"gold": 1, "silver": 1, "bronze": 0, "total": 2}

    upgraded = client.post("/api/v1/badges/upgrade", json={"userId": 1, "storyId": 2, "newTier": "gold"})
    assert upgraded.json() == {"success": True}

    story_badges = client.get("/api/v1/badges/1/stories/2").json()
    assert {badge["badge_category"]: badge["badge_type"] for badge in story_badges} == {
        "story-completion": "gold",
        "quiz-1": "gold",
    }

    awarded = client.post("/api/v1/badges/award", json={
        "userId": 1, "storyId": 3, "badgeType": "bronze", "badgeCategory": "quiz-2",
    })
    assert awarded.json() == {"success": True, "change": "inserted"}
    assert [badge["story_id"] for badge in client.get("/api/v1/badges/1").json()] == [2, 2, 3]


def test_rest_user_routes(client):
    registered = client.post("/api/v1/auth/register", json={"name": "Leo", "birthdate": "2017-09-12"}).json()
    user = client.get(f"/api/v1/auth/users/{registered['userId']}").json()
    assert user["username"] == "Leo"

    missing = client.get("/api/v1/auth/users/999")
    assert missing.status_code == 404
    assert missing.json() == {"error": "用户不存在"}


def test_quiz_result_rejects_score_above_total(client):
    response = client.post("/api/v1/quizzes/results", json={
        "userId": 1, "storyId": 1, "quizNumber": 1, "score": 7, "totalQuestions": 5,
    })
    assert response.status_code == 422
    assert client.get("/api/v1/quizzes/1/results").json() == []


def test_quiz_result_failure_is_returned_as_is(client, monkeypatch):
    """保存失败时返回失败结果本身"""
    def broken(self, *args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(QuizService, "record_attempt", broken)

    response = client.post("/api/v1/quizzes/results", json={
        "userId": 1, "storyId": 1, "quizNumber": 1, "score": 3, "totalQuestions": 5,
    })
    assert response.status_code == 200
    assert response.json() == {"success": False, "message": settings.FRIENDLY_RETRY_MESSAGE}
