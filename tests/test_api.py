import asyncio

import pytest
from fastapi.testclient import TestClient

from api import routes
from api.app import create_app
from aptitude_test.services.history_store import HistoryStore


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "history.json"


@pytest.fixture
def client(bank, history_path):
    app = create_app()
    store = HistoryStore(str(history_path))
    app.dependency_overrides[routes.get_question_bank] = lambda: bank
    app.dependency_overrides[routes.get_history_store] = lambda: store
    with TestClient(app) as c:
        yield c


def _start(client, **body):
    payload = {"mode": "single", "topics": ["Programming"], "difficulty": "easy"}
    payload.update(body)
    return client.post("/api/start-test", json=payload)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_catalog(client):
    data = client.get("/api/catalog").json()

    assert "Programming" in data["categories"]
    assert data["availability"]["Programming"]["easy"] == 12
    assert data["target_count"] == 10


def test_full_flow(client):
    res = _start(client)
    assert res.status_code == 200
    assert res.json()["total"] == 10

    state = client.get("/api/test-state").json()
    assert state["status"] == "running"
    assert state["time_remaining"] == 600

    first = client.get("/api/question/0").json()
    assert "correct_answer" not in first

    for qid in state["question_ids"][:6]:
        assert client.post("/api/answer", json={"question_id": qid, "option": "A"}).status_code == 200
    assert client.post("/api/next").json()["index"] == 1
    assert client.post("/api/navigate", json={"index": 99}).json()["index"] == 9

    res = client.post("/api/submit")
    assert res.status_code == 200
    result = res.json()["result"]
    assert result["score"] == 6
    assert result["total"] == 10
    assert result["performance_band"] == "Good effort!"
    assert "warning" not in res.json()

    # idempotent
    assert client.post("/api/submit").json()["result"] == result

    revealed = client.get("/api/question/0").json()
    assert revealed["correct_answer"] == "A"

    results = client.get("/api/results").json()
    assert results["unanswered_count"] == 4
    assert len(results["incorrect_questions"]) == 4

    history = client.get("/api/history").json()
    assert history["user_id"] == "demo-user"
    assert [r["score"] for r in history["results"]] == [6]


def test_answer_validation(client):
    _start(client)
    qid = client.get("/api/test-state").json()["question_ids"][0]

    assert client.post("/api/answer", json={"question_id": qid, "option": "Z"}).status_code == 422
    assert client.post("/api/answer", json={"question_id": "nope", "option": "A"}).status_code == 422

    client.post("/api/answer", json={"question_id": qid, "option": "B"})
    cleared = client.post("/api/answer", json={"question_id": qid, "option": ""})
    assert cleared.json()["answered_count"] == 0


def test_operations_after_submit_conflict(client):
    _start(client)
    qid = client.get("/api/test-state").json()["question_ids"][0]
    client.post("/api/submit")

    assert client.post("/api/answer", json={"question_id": qid, "option": "A"}).status_code == 409
    assert client.post("/api/next").status_code == 409
    assert client.post("/api/tick").status_code == 409


def test_second_start_while_running_conflicts(client):
    _start(client)

    assert _start(client).status_code == 409


def test_insufficient_questions(client):
    res = _start(client, topics=["Data Structures"])

    assert res.status_code == 422
    assert "Not enough questions" in res.json()["detail"]


def test_invalid_selection(client):
    res = _start(client, topics=["Programming", "Networking"])

    assert res.status_code == 422


def test_mixed_start(client):
    res = _start(client, mode="mixed", topics=["Data Structures", "Networking"])

    assert res.status_code == 200
    assert res.json()["category"] == "Data Structures, Networking"


def test_timeout_via_tick(client):
    _start(client, duration_seconds=2)

    assert client.post("/api/tick").json() == {"ok": True, "completed": False, "time_remaining": 1}
    final = client.post("/api/tick").json()
    assert final["completed"] is True
    assert final["result"]["score"] == 0


def test_no_test_in_progress(client):
    assert client.get("/api/test-state").status_code == 404
    assert client.post("/api/submit").status_code == 404
    assert client.get("/api/results").status_code == 404


def test_history_failure_surfaces_warning(client, history_path):
    history_path.write_text("{broken", encoding="utf-8")
    _start(client)

    res = client.post("/api/submit")

    assert res.status_code == 200
    assert res.json()["warning"] == routes.HISTORY_WARNING
    assert client.get("/api/history").status_code == 503


def test_identify_scopes_history(client):
    client.post("/api/identify", json={"user_id": "alice"})
    _start(client)
    client.post("/api/submit")

    assert client.get("/api/history").json()["user_id"] == "alice"
    client.post("/api/identify", json={"user_id": "bob"})
    assert client.get("/api/history").json()["results"] == []


def test_reset_clears_test(client):
    _start(client)
    client.post("/api/reset")

    assert client.get("/api/test-state").status_code == 404


def test_import_requires_api_key(client):
    res = client.post(
        "/api/import-questions",
        files={"file": ("paper.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert res.status_code == 400


def test_set_api_key_validation(client):
    assert client.post("/api/set-api-key", json={"api_key": "  "}).status_code == 400
    assert client.post("/api/set-api-key", json={"api_key": "abc"}).status_code == 400
    assert client.post("/api/set-api-key", json={"api_key": "sk-test"}).status_code == 200


def test_index_serves_browser_client(client):
    res = client.get("/")

    assert res.status_code == 200
    assert "Aptitude Tests" in res.text


class _LoopAwareStore(HistoryStore):
    """Remembers whether each write ran on the event loop thread."""

    def __init__(self, path):
        super().__init__(path)
        self.writes_on_loop = []

    def add(self, result, user_id):
        try:
            asyncio.get_running_loop()
            self.writes_on_loop.append(True)
        except RuntimeError:
            self.writes_on_loop.append(False)
        return super().add(result, user_id)


@pytest.fixture
def loop_aware(bank, history_path):
    app = create_app()
    store = _LoopAwareStore(str(history_path))
    app.dependency_overrides[routes.get_question_bank] = lambda: bank
    app.dependency_overrides[routes.get_history_store] = lambda: store
    with TestClient(app) as c:
        yield c, store


def test_history_write_runs_off_the_event_loop(loop_aware):
    client, store = loop_aware

    _start(client)
    assert client.post("/api/submit").status_code == 200
    _start(client, duration_seconds=1)
    assert client.post("/api/tick").json()["completed"] is True

    assert store.writes_on_loop == [False, False]
    assert len(store.list_for("demo-user")) == 2
