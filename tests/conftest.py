"""
Pytest configuration, fakes for the quiz engine ports and shared fixtures.
"""
import os
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")

from bot.quiz.controller import QuizController, QuizOptions  # noqa: E402
from bot.quiz.errors import DeliveryFailure, PersistenceFailure  # noqa: E402
from bot.quiz.models import Question  # noqa: E402
from bot.quiz.session_store import SessionStore  # noqa: E402
from bot.quiz.source import QuestionSource  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: API tests against an in-memory database")


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeTransport:
    def __init__(self):
        self.sent = []
        self.texts = []
        self.closed = []
        self.controls = []
        self.fail_sends = False
        self.fail_texts = False
        self._counter = 0

    async def send_question(self, chat_id, question, index, total):
        if self.fail_sends:
            raise DeliveryFailure("send failed")
        self._counter += 1
        token = f"tok-{self._counter}"
        self.sent.append({"chat_id": chat_id, "question": question, "index": index, "total": total, "token": token})
        return token

    async def close_delivery(self, token):
        self.closed.append(token)

    async def update_control(self, token, answered):
        self.controls.append((token, answered))

    async def send_text(self, chat_id, text, start_button=False):
        if self.fail_texts:
            raise DeliveryFailure("text failed")
        self.texts.append({"chat_id": chat_id, "text": text, "start_button": start_button})

    @property
    def last_token(self):
        return self.sent[-1]["token"]


class FakeGateway:
    def __init__(self):
        self.users = {}
        self.answers = {}
        self.results = []
        self.fail = False

    async def ensure_user(self, user_id, profile):
        if self.fail:
            raise PersistenceFailure("store down")
        self.users.setdefault(user_id, dict(profile))

    async def record_answer(self, user_id, question_id, option_index):
        if self.fail:
            raise PersistenceFailure("store down")
        self.answers[(user_id, question_id)] = option_index

    async def save_test_result(self, user_id, started_at, ended_at, summary, raw_answers):
        if self.fail:
            raise PersistenceFailure("store down")
        self.results.append(
            {
                "user_id": user_id,
                "started_at": started_at,
                "ended_at": ended_at,
                "summary": summary,
                "raw_answers": list(raw_answers),
            }
        )


class StaticBank:
    def __init__(self, questions):
        self.questions = list(questions)
        self.error = None
        self.calls = []

    async def load_questions(self, limit=None):
        self.calls.append(limit)
        if self.error is not None:
            raise self.error
        return list(self.questions)


def make_question(qid, correct=0, options=("A", "B", "C", "D")):
    return Question(id=qid, text=f"Question {qid}?", options=tuple(options), correct_option_index=correct)


@pytest.fixture
def questions():
    return [
        make_question("q1", correct=0),
        make_question("q2", correct=1),
        make_question("q3", correct=2),
        make_question("q4", correct=3),
    ]


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def bank(questions):
    return StaticBank(questions)


@pytest.fixture
def make_controller(transport, gateway, bank):
    def _make(**options):
        options.setdefault("question_count", None)
        return QuizController(
            store=SessionStore(),
            source=QuestionSource(bank),
            transport=transport,
            gateway=gateway,
            options=QuizOptions(**options),
        )

    return _make


@pytest.fixture
def question_factory():
    return make_question
