import pytest

from conftest import make_selected_set
from aptitude_test.errors import InvalidOption, StateViolation
from aptitude_test.models.session_state import SessionStatus
from aptitude_test.services.test_session import TestSession


@pytest.fixture
def completions():
    return []


@pytest.fixture
def running(selected_set, clock, completions):
    test = TestSession(on_complete=completions.append, clock=clock)
    test.start(selected_set, duration_seconds=600)
    return test


def test_new_session_is_not_started():
    test = TestSession()

    assert test.status is SessionStatus.NOT_STARTED
    assert test.questions == ()
    assert test.current_question is None
    assert test.result is None


def test_start_initialises_state(selected_set, clock):
    test = TestSession(clock=clock)
    state = test.start(selected_set, duration_seconds=600)

    assert state.status is SessionStatus.RUNNING
    assert state.current_index == 0
    assert state.answers == {}
    assert state.time_remaining == 600
    assert state.started_at == clock.now
    assert test.current_question.id == selected_set.questions[0].id


def test_start_twice_is_rejected(running, selected_set):
    with pytest.raises(StateViolation):
        running.start(selected_set)


def test_start_rejects_bad_duration(selected_set):
    with pytest.raises(ValueError):
        TestSession().start(selected_set, duration_seconds=0)


def test_select_answer_records_and_replaces(running, selected_set):
    qid = selected_set.questions[3].id

    running.select_answer(qid, "B")
    state = running.select_answer(qid, "C")

    assert state.answers == {qid: "C"}
    assert state.current_index == 0


def test_select_answer_rejects_unknown_option(running, selected_set):
    qid = selected_set.questions[0].id

    with pytest.raises(InvalidOption):
        running.select_answer(qid, "Z")
    with pytest.raises(InvalidOption):
        running.select_answer("not-in-set", "A")
    assert running.answers == {}


def test_clear_answer(running, selected_set):
    qid = selected_set.questions[0].id
    running.select_answer(qid, "A")

    state = running.clear_answer(qid)

    assert qid not in state.answers


def test_navigation_is_clamped(running):
    assert running.previous().current_index == 0

    for _ in range(15):
        running.next()
    assert running.current_index == 9

    assert running.go_to(4).current_index == 4
    assert running.go_to(-3).current_index == 0
    assert running.go_to(42).current_index == 9


def test_tick_counts_down(running):
    assert running.tick() is None
    assert running.time_remaining == 599
    assert running.elapsed_seconds == 1


def test_timeout_submits_partial_answers(selected_set, clock, completions):
    test = TestSession(on_complete=completions.append, clock=clock)
    test.start(selected_set, duration_seconds=600)
    for q in selected_set.questions[:4]:
        test.select_answer(q.id, q.correct_answer)

    result = None
    for _ in range(600):
        result = test.tick()

    assert test.status is SessionStatus.COMPLETED
    assert result is not None
    assert result.score == 4
    assert result.total == 10
    assert result.incorrect == 6
    assert result.questions_answered == 4
    assert result.elapsed_seconds == 600
    assert completions == [result]


def test_advance_stops_at_completion(running, completions):
    result = running.advance(1000)

    assert running.is_completed
    assert running.time_remaining == 0
    assert result is running.result
    assert len(completions) == 1


def test_submit_is_idempotent(running, completions):
    first = running.submit()
    second = running.submit()

    assert first is second
    assert len(completions) == 1


def test_submit_scores_answers(running, selected_set):
    running.select_answer(selected_set.questions[0].id, "A")
    running.select_answer(selected_set.questions[1].id, "B")

    result = running.submit()

    assert result.score == 1
    assert result.questions_answered == 2
    assert result.category == "Programming"


def test_operations_after_completion_leave_state_unchanged(running, selected_set):
    running.select_answer(selected_set.questions[0].id, "A")
    running.submit()
    before = running.snapshot()

    for operation in (
        lambda: running.select_answer(selected_set.questions[1].id, "A"),
        lambda: running.clear_answer(selected_set.questions[0].id),
        running.next,
        running.previous,
        lambda: running.go_to(5),
        running.tick,
    ):
        with pytest.raises(StateViolation) as exc_info:
            operation()
        assert exc_info.value.state == before

    assert running.snapshot() == before


def test_operations_before_start_are_rejected():
    test = TestSession()

    with pytest.raises(StateViolation):
        test.select_answer("q", "A")
    with pytest.raises(StateViolation):
        test.tick()
    with pytest.raises(StateViolation):
        test.submit()


def test_snapshot_is_a_copy(running, selected_set):
    snapshot = running.snapshot()
    snapshot.answers[selected_set.questions[0].id] = "A"

    assert running.answers == {}


def test_completion_timestamp_comes_from_clock(clock):
    test = TestSession(clock=clock)
    test.start(make_selected_set(), duration_seconds=60)
    clock.now += 30

    result = test.submit()

    assert result.completed_at.timestamp() == clock.now
    assert test.snapshot().completed_at == clock.now
