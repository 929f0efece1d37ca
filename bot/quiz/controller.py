from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from bot.quiz.correlator import AnswerResult, is_current, record_answer, record_skip
from bot.quiz.errors import DeliveryFailure, NoActiveSession, PersistenceFailure, SourceUnavailable
from bot.quiz.models import FinalReport, Mark, QuizSession, SessionState
from bot.quiz.ports import ChatTransport, PersistenceGateway
from bot.quiz.scoring import DEFAULT_POLICY, ScoringPolicy, score
from bot.quiz.sequencer import Deliver, advance
from bot.quiz.session_store import SessionStore
from bot.quiz.source import QuestionSource

logger = logging.getLogger(__name__)

CONTROL_ACTIONS = {"start", "skip", "next"}


@dataclass(frozen=True)
class QuizOptions:
    question_count: Optional[int] = 5
    duration_seconds: Optional[float] = None
    restart_policy: Literal["finalize", "discard"] = "finalize"
    scoring: ScoringPolicy = DEFAULT_POLICY


class QuizController:
    """Routes chat events into the per-user quiz session state machine."""

    def __init__(
        self,
        *,
        store: SessionStore,
        source: QuestionSource,
        transport: ChatTransport,
        gateway: PersistenceGateway,
        options: QuizOptions = QuizOptions(),
    ) -> None:
        self.store = store
        self.source = source
        self.transport = transport
        self.gateway = gateway
        self.options = options

    # inbound events

    async def on_start(self, user_id: int, chat_id: int, profile: dict[str, Any] | None = None) -> None:
        try:
            await self.gateway.ensure_user(user_id, profile or {})
        except PersistenceFailure as exc:
            logger.warning("ensure_user failed user=%s err=%s", user_id, exc)
        await self._send_text(chat_id, self.welcome_text(), start_button=True)

    async def start_test(self, user_id: int, chat_id: int) -> Optional[QuizSession]:
        try:
            questions = await self.source.fetch(self.options.question_count)
        except SourceUnavailable as exc:
            logger.warning("cannot start test user=%s: %s", user_id, exc)
            await self._send_text(chat_id, "Questions are unavailable right now. Please try again later.")
            return None

        reports: list[FinalReport] = []
        async with self.store.lock(user_id):
            session, replaced = self.store.begin(user_id=user_id, chat_id=chat_id, questions=questions)
            if replaced is not None:
                if self.options.restart_policy == "discard":
                    await self._discard_locked(replaced)
                else:
                    reports.append(await self._finish_locked(replaced, reason="restarted"))

            step = advance(session)
            if isinstance(step, Deliver):
                await self._deliver(session, step)
                self._schedule_deadline(session)
            else:
                reports.append(await self._finish_locked(session, reason="completed"))
            logger.info(
                "test started user=%s session=%s questions=%s",
                user_id,
                session.session_id,
                len(session.questions),
            )

        for report in reports:
            await self._persist(report)
        return session

    async def on_answer(
        self,
        user_id: int,
        option_index: int,
        token: str | None = None,
        chat_id: int | None = None,
    ) -> Optional[AnswerResult]:
        """Apply an answer; ``token=None`` correlates it to the question in flight."""
        async with self.store.lock(user_id):
            session = self.store.get(user_id)
            if session is not None:
                if token is None:
                    token = session.active_delivery_token
                result = record_answer(session, token, option_index)
                question_id = session.questions[session.cursor].id if result.recorded else None
                # a finish holding the lock closes the delivery after this edit, not before
                if result.recorded and token is not None:
                    await self._update_control(token)

        if session is None:
            await self._no_active_session(NoActiveSession(user_id), chat_id)
            return None

        if result.recorded and question_id is not None:
            try:
                await self.gateway.record_answer(user_id, question_id, option_index)
            except PersistenceFailure as exc:
                logger.warning("record_answer failed user=%s question=%s err=%s", user_id, question_id, exc)
        return result

    async def on_control(
        self,
        user_id: int,
        token: str | None,
        action: str,
        chat_id: int | None = None,
    ) -> Optional[FinalReport]:
        """Handle start/skip/next; returns the report when the test ended."""
        if action not in CONTROL_ACTIONS:
            raise ValueError(f"unknown control action: {action!r}")
        if action == "start":
            await self.start_test(user_id, chat_id if chat_id is not None else user_id)
            return None

        report: Optional[FinalReport] = None
        async with self.store.lock(user_id):
            session = self.store.get(user_id)
            if session is not None:
                if not is_current(session, token):
                    logger.debug("stale %s user=%s token=%s", action, user_id, token)
                    return None
                await self._close_delivery(token)
                step = record_skip(session)
                if isinstance(step, Deliver):
                    await self._deliver(session, step)
                else:
                    report = await self._finish_locked(session, reason="completed")

        if session is None:
            await self._no_active_session(NoActiveSession(user_id), chat_id)
            return None
        if report is not None:
            report = await self._persist(report)
        return report

    async def on_deadline(self, user_id: int, session_id: str) -> Optional[FinalReport]:
        return await self.finish(user_id, session_id=session_id, reason="timeout")

    async def finish(
        self, user_id: int, session_id: str | None = None, reason: str = "ended"
    ) -> Optional[FinalReport]:
        """End the user's live test now. A mismatched ``session_id`` is a no-op."""
        async with self.store.lock(user_id):
            session = self.store.get(user_id)
            if session is None or not session.is_live:
                return None
            if session_id is not None and session.session_id != session_id:
                return None
            report = await self._finish_locked(session, reason=reason)
        return await self._persist(report)

    # texts

    def welcome_text(self) -> str:
        count = self.options.question_count
        questions = f"{count} questions" if count else "all available questions"
        text = f"Welcome to the Mock Test Bot! This test contains {questions}"
        if self.options.duration_seconds:
            text += f" and lasts for {self.options.duration_seconds:g} seconds"
        return text + '. Press "Start Test" when you\'re ready.'

    @staticmethod
    def summary_text(report: FinalReport, reason: str = "completed") -> str:
        summary = report.summary
        lines = []
        if reason == "timeout":
            lines.append("Time is up!")
        lines += [
            "Test completed!",
            f"Score: {summary.total_score}",
            f"Correct: {summary.correct}/{summary.total}",
            f"Incorrect: {summary.incorrect}",
            f"Unattempted: {summary.unattempted}",
            f"Time taken: {report.elapsed_seconds:.2f} seconds",
        ]
        return "\n".join(lines)

    # internals, *_locked helpers expect the caller to hold the user's lock

    async def _deliver(self, session: QuizSession, step: Deliver) -> None:
        try:
            token = await self.transport.send_question(
                session.chat_id, step.question, step.index, len(session.questions)
            )
        except DeliveryFailure as exc:
            logger.exception("question delivery failed user=%s index=%s: %s", session.user_id, step.index, exc)
            token = f"undelivered:{session.session_id}:{step.index}"
        session.activate(token)

    async def _finish_locked(self, session: QuizSession, reason: str) -> FinalReport:
        session.state = SessionState.FINALIZING
        session.cancel_deadline()
        token = session.active_delivery_token
        session.active_delivery_token = None
        if token is not None:
            await self._close_delivery(token)

        summary = score(session.questions, session.answers, self.options.scoring)
        report = FinalReport(
            user_id=session.user_id,
            session_id=session.session_id,
            summary=summary,
            started_at=session.started_at,
            ended_at=datetime.now(timezone.utc),
            raw_answers=[None if isinstance(answer, Mark) else answer for answer in session.answers],
        )
        session.state = SessionState.COMPLETED
        self.store.remove(session.user_id, session.session_id)
        logger.info(
            "test finished user=%s session=%s reason=%s score=%s",
            session.user_id,
            session.session_id,
            reason,
            summary.total_score,
        )
        await self._send_text(session.chat_id, self.summary_text(report, reason))
        return report

    async def _discard_locked(self, session: QuizSession) -> None:
        session.cancel_deadline()
        token = session.active_delivery_token
        session.active_delivery_token = None
        session.state = SessionState.COMPLETED
        self.store.remove(session.user_id, session.session_id)
        if token is not None:
            await self._close_delivery(token)
        logger.info("test discarded user=%s session=%s", session.user_id, session.session_id)

    async def _persist(self, report: FinalReport) -> FinalReport:
        try:
            await self.gateway.save_test_result(
                report.user_id,
                report.started_at,
                report.ended_at,
                report.summary,
                report.raw_answers,
            )
        except PersistenceFailure as exc:
            logger.error("saving result failed user=%s session=%s err=%s", report.user_id, report.session_id, exc)
            return dataclasses.replace(report, persisted=False)
        return report

    def _schedule_deadline(self, session: QuizSession) -> None:
        delay = self.options.duration_seconds
        if not delay:
            return
        session.deadline = asyncio.create_task(
            self._deadline(session.user_id, session.session_id, delay),
            name=f"quiz-deadline-{session.session_id}",
        )

    async def _deadline(self, user_id: int, session_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self.on_deadline(user_id, session_id)
        except Exception:
            logger.exception("deadline handling failed user=%s session=%s", user_id, session_id)

    async def _no_active_session(self, exc: NoActiveSession, chat_id: int | None) -> None:
        logger.info("%s", exc)
        target = chat_id if chat_id is not None else exc.user_id
        await self._send_text(target, "You have no active test. Send /start to begin a new one.")

    async def _send_text(self, chat_id: int, text: str, start_button: bool = False) -> None:
        try:
            await self.transport.send_text(chat_id, text, start_button=start_button)
        except DeliveryFailure as exc:
            logger.warning("send_text failed chat=%s err=%s", chat_id, exc)

    async def _close_delivery(self, token: str) -> None:
        try:
            await self.transport.close_delivery(token)
        except DeliveryFailure as exc:
            logger.warning("close_delivery failed token=%s err=%s", token, exc)

    async def _update_control(self, token: str) -> None:
        try:
            await self.transport.update_control(token, answered=True)
        except DeliveryFailure as exc:
            logger.warning("update_control failed token=%s err=%s", token, exc)
