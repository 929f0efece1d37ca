import asyncio

import pytest

from bot.quiz.correlator import AnswerOutcome
from bot.quiz.errors import SourceUnavailable
from bot.quiz.models import SessionState


@pytest.mark.asyncio
async def test_start_answer_next_skip_scenario(make_controller, bank, questions, transport, gateway):
    bank.questions = questions[:2]
    controller = make_controller()

    session = await controller.start_test(1, 1)
    first_token = transport.last_token
    first = session.questions[0]

    result = await controller.on_answer(1, first.correct_option_index, token=first_token)
    assert result.outcome is AnswerOutcome.ACCEPTED
    assert transport.controls == [(first_token, True)]

    assert await controller.on_control(1, first_token, "next") is None
    second_token = transport.last_token
    assert second_token != first_token
    assert first_token in transport.closed

    report = await controller.on_control(1, second_token, "skip")

    assert report.summary.as_dict() == {
        "total": 2,
        "attempted": 1,
        "correct": 1,
        "incorrect": 0,
        "unattempted": 1,
        "total_score": 4,
    }
    assert report.persisted
    assert controller.store.get(1) is None
    assert session.state is SessionState.COMPLETED
    assert gateway.answers == {(1, first.id): first.correct_option_index}
    assert gateway.results[0]["raw_answers"] == [first.correct_option_index, None]
    assert "Test completed!" in transport.texts[-1]["text"]
    assert "Score: 4" in transport.texts[-1]["text"]


@pytest.mark.asyncio
async def test_answer_without_token_targets_question_in_flight(make_controller, transport):
    controller = make_controller()
    session = await controller.start_test(1, 1)

    result = await controller.on_answer(1, 2)

    assert result.recorded
    assert session.answers[0] == 2


@pytest.mark.asyncio
async def test_duplicate_answer_is_persisted_once(make_controller, transport, gateway):
    controller = make_controller()
    session = await controller.start_test(1, 1)
    token = transport.last_token

    await controller.on_answer(1, 1, token=token)
    second = await controller.on_answer(1, 3, token=token)

    assert not second.recorded
    assert session.answers[0] == 1
    assert gateway.answers == {(1, session.questions[0].id): 1}
    assert len(transport.controls) == 1


@pytest.mark.asyncio
async def test_answer_after_skip_is_stale(make_controller, transport, gateway):
    controller = make_controller()
    session = await controller.start_test(1, 1)
    old_token = transport.last_token

    await controller.on_control(1, old_token, "skip")
    result = await controller.on_answer(1, 0, token=old_token)

    assert result.outcome is AnswerOutcome.STALE
    assert session.cursor == 1
    assert gateway.answers == {}


@pytest.mark.asyncio
async def test_out_of_range_answer_is_rejected(make_controller, gateway):
    controller = make_controller()
    session = await controller.start_test(1, 1)

    result = await controller.on_answer(1, 9)

    assert result.outcome is AnswerOutcome.OUT_OF_RANGE
    assert gateway.answers == {}
    assert session.cursor == 0


@pytest.mark.asyncio
async def test_stale_skip_is_ignored(make_controller, transport):
    controller = make_controller()
    session = await controller.start_test(1, 1)

    assert await controller.on_control(1, "tok-from-elsewhere", "skip") is None
    assert session.cursor == 0
    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_restart_finalizes_prior_session_once(make_controller, transport, gateway):
    controller = make_controller()
    first = await controller.start_test(1, 1)
    await controller.on_answer(1, first.questions[0].correct_option_index)
    first_token = first.active_delivery_token

    second = await controller.start_test(1, 1)

    assert controller.store.get(1) is second
    assert len(controller.store) == 1
    assert first.state is SessionState.COMPLETED
    assert first_token in transport.closed
    assert len(gateway.results) == 1
    assert gateway.results[0]["summary"].correct == 1

    stale = await controller.on_answer(1, 0, token=first_token)
    assert stale.outcome is AnswerOutcome.STALE

    await controller.finish(1)
    assert len(gateway.results) == 2
    assert controller.store.get(1) is None


@pytest.mark.asyncio
async def test_restart_with_discard_policy_persists_nothing(make_controller, transport, gateway):
    controller = make_controller(restart_policy="discard")
    first = await controller.start_test(1, 1)

    second = await controller.start_test(1, 1)

    assert controller.store.get(1) is second
    assert first.state is SessionState.COMPLETED
    assert gateway.results == []
    assert not any("Test completed!" in item["text"] for item in transport.texts)


@pytest.mark.asyncio
async def test_skipping_through_reaches_completion(make_controller, transport, gateway, questions):
    controller = make_controller()
    await controller.start_test(1, 1)

    report = None
    for _ in range(len(questions)):
        report = await controller.on_control(1, transport.last_token, "skip")

    assert report is not None
    assert report.summary.unattempted == len(questions)
    assert report.summary.total_score == 0
    assert len(controller.store) == 0
    assert len(gateway.results) == 1


@pytest.mark.asyncio
async def test_unavailable_source_starts_nothing(make_controller, bank, transport):
    bank.error = SourceUnavailable("down")
    controller = make_controller()

    assert await controller.start_test(1, 1) is None
    assert len(controller.store) == 0
    assert transport.sent == []
    assert "unavailable" in transport.texts[-1]["text"]


@pytest.mark.asyncio
async def test_events_without_session_prompt_restart(make_controller, transport):
    controller = make_controller()

    assert await controller.on_answer(5, 0) is None
    assert await controller.on_control(5, "tok-1", "skip", chat_id=50) is None

    assert [item["chat_id"] for item in transport.texts] == [5, 50]
    assert all("/start" in item["text"] for item in transport.texts)


@pytest.mark.asyncio
async def test_unknown_control_action(make_controller):
    controller = make_controller()

    with pytest.raises(ValueError):
        await controller.on_control(1, "tok-1", "rewind")


@pytest.mark.asyncio
async def test_start_control_begins_test(make_controller, transport):
    controller = make_controller()

    await controller.on_control(1, None, "start", chat_id=1)

    assert controller.store.get(1) is not None
    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_deadline_ends_test(make_controller, transport, gateway):
    controller = make_controller(duration_seconds=0.05)
    await controller.start_test(1, 1)

    await asyncio.sleep(0.3)

    assert controller.store.get(1) is None
    assert len(gateway.results) == 1
    assert "Time is up!" in transport.texts[-1]["text"]


@pytest.mark.asyncio
async def test_restart_cancels_prior_deadline(make_controller, gateway):
    controller = make_controller(duration_seconds=0.3)
    first = await controller.start_test(1, 1)
    first_deadline = first.deadline
    await asyncio.sleep(0.15)

    second = await controller.start_test(1, 1)
    await asyncio.sleep(0.2)

    assert first_deadline.cancelled()
    assert controller.store.get(1) is second
    assert await controller.on_deadline(1, first.session_id) is None
    assert controller.store.get(1) is second
    assert len(gateway.results) == 1

    await controller.finish(1)
    assert second.deadline is None


@pytest.mark.asyncio
async def test_completion_cancels_deadline(make_controller, transport, questions):
    controller = make_controller(duration_seconds=60)
    session = await controller.start_test(1, 1)
    deadline = session.deadline

    for _ in range(len(questions)):
        await controller.on_control(1, transport.last_token, "skip")
    await asyncio.sleep(0.01)

    assert deadline.cancelled()
    assert await controller.on_deadline(1, session.session_id) is None


@pytest.mark.asyncio
async def test_delivery_failure_does_not_abort(make_controller, transport):
    transport.fail_sends = True
    controller = make_controller()

    session = await controller.start_test(1, 1)

    assert session.state is SessionState.QUESTION_ACTIVE
    assert session.active_delivery_token.startswith("undelivered:")
    await controller.on_control(1, session.active_delivery_token, "skip")
    assert session.cursor == 1


@pytest.mark.asyncio
async def test_persistence_failure_still_reports_summary(make_controller, transport, gateway, questions):
    controller = make_controller()
    await controller.start_test(1, 1)
    gateway.fail = True

    await controller.on_answer(1, 0)
    report = None
    for _ in range(len(questions)):
        report = await controller.on_control(1, transport.last_token, "skip")

    assert report.persisted is False
    assert "Test completed!" in transport.texts[-1]["text"]
    assert controller.store.get(1) is None


@pytest.mark.asyncio
async def test_on_start_registers_user_and_offers_start(make_controller, transport, gateway):
    controller = make_controller(question_count=5, duration_seconds=30)

    await controller.on_start(1, 1, {"username": "alice"})

    assert gateway.users == {1: {"username": "alice"}}
    assert transport.texts[-1]["start_button"] is True
    assert "5 questions" in transport.texts[-1]["text"]
    assert "30 seconds" in transport.texts[-1]["text"]


@pytest.mark.asyncio
async def test_on_start_survives_store_outage(make_controller, transport, gateway):
    gateway.fail = True
    controller = make_controller()

    await controller.on_start(1, 1)

    assert transport.texts[-1]["start_button"] is True


@pytest.mark.asyncio
async def test_users_do_not_share_sessions(make_controller):
    controller = make_controller()

    one, two = await asyncio.gather(controller.start_test(1, 1), controller.start_test(2, 2))

    assert controller.store.get(1) is one
    assert controller.store.get(2) is two
    assert one.active_delivery_token != two.active_delivery_token


@pytest.mark.asyncio
async def test_answer_control_update_happens_before_a_pending_finish(make_controller, transport):
    controller = make_controller()
    session = await controller.start_test(1, 1)
    token = transport.last_token
    lock_held = []
    closed_before = []
    original = transport.update_control

    async def slow_update_control(tok, answered):
        lock_held.append(controller.store.lock(1).locked())
        closed_before.append(list(transport.closed))
        await asyncio.sleep(0.05)
        await original(tok, answered)

    transport.update_control = slow_update_control

    answer = asyncio.create_task(controller.on_answer(1, session.questions[0].correct_option_index, token=token))
    await asyncio.sleep(0.01)
    report = await controller.finish(1)
    await answer

    assert lock_held == [True]
    assert closed_before == [[]]
    assert report.summary.correct == 1
    assert transport.controls == [(token, True)]
    assert token in transport.closed
