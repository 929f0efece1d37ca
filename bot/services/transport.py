from __future__ import annotations

import logging
from typing import Dict, Literal, Optional, Tuple

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Message, Poll
from telegram.error import TelegramError

from bot.quiz.errors import DeliveryFailure
from bot.quiz.models import Question

logger = logging.getLogger(__name__)

POLL_QUESTION_LIMIT = 300
POLL_OPTION_LIMIT = 100


def start_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[InlineKeyboardButton("Start Test", callback_data="quiz:start")]])


def control_keyboard(answered: bool) -> InlineKeyboardMarkup:
    if answered:
        return InlineKeyboardMarkup([[InlineKeyboardButton("Next", callback_data="quiz:next")]])
    return InlineKeyboardMarkup([[InlineKeyboardButton("Skip", callback_data="quiz:skip")]])


def question_keyboard(question: Question) -> InlineKeyboardMarkup:
    keyboard = [
        [InlineKeyboardButton(text=option or f"Option {idx + 1}", callback_data=f"ans:{idx}")]
        for idx, option in enumerate(question.options)
    ]
    keyboard.append([InlineKeyboardButton("Skip", callback_data="quiz:skip")])
    return InlineKeyboardMarkup(keyboard)


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


class TelegramTransport:
    """Question delivery over Telegram: inline-button messages or native quiz polls.

    The delivery token is ``<chat_id>:<message_id>`` for button messages and the
    poll id for polls, so inbound answers can always name their question.
    """

    def __init__(self, bot: Bot, mode: Literal["buttons", "poll"] = "buttons") -> None:
        self._bot = bot
        self.mode = mode
        self._deliveries: Dict[str, Tuple[int, int]] = {}

    @staticmethod
    def token_for_message(message: Message) -> str:
        if message.poll is not None:
            return message.poll.id
        return f"{message.chat_id}:{message.message_id}"

    async def send_question(self, chat_id: int, question: Question, index: int, total: int) -> str:
        text = f"Question {index + 1}/{total}: {question.text}"
        try:
            if self.mode == "poll":
                message = await self._bot.send_poll(
                    chat_id=chat_id,
                    question=_clip(text, POLL_QUESTION_LIMIT),
                    options=[_clip(option, POLL_OPTION_LIMIT) for option in question.options],
                    type=Poll.QUIZ,
                    correct_option_id=question.correct_option_index,
                    is_anonymous=False,
                    reply_markup=control_keyboard(answered=False),
                )
            else:
                message = await self._bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    reply_markup=question_keyboard(question),
                )
        except TelegramError as exc:
            raise DeliveryFailure(f"send_question chat={chat_id}: {exc}") from exc

        token = self.token_for_message(message)
        self._deliveries[token] = (chat_id, message.message_id)
        return token

    async def close_delivery(self, token: str) -> None:
        target = self._deliveries.pop(token, None)
        if target is None:
            return
        chat_id, message_id = target
        try:
            if self.mode == "poll":
                await self._bot.stop_poll(chat_id=chat_id, message_id=message_id)
            else:
                await self._bot.edit_message_reply_markup(chat_id=chat_id, message_id=message_id, reply_markup=None)
        except TelegramError as exc:
            raise DeliveryFailure(f"close_delivery {token}: {exc}") from exc

    async def update_control(self, token: str, answered: bool) -> None:
        target = self._deliveries.get(token)
        if target is None:
            return
        chat_id, message_id = target
        try:
            await self._bot.edit_message_reply_markup(
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=control_keyboard(answered),
            )
        except TelegramError as exc:
            raise DeliveryFailure(f"update_control {token}: {exc}") from exc

    async def send_text(self, chat_id: int, text: str, start_button: bool = False) -> None:
        markup: Optional[InlineKeyboardMarkup] = start_keyboard() if start_button else None
        try:
            await self._bot.send_message(chat_id=chat_id, text=text, reply_markup=markup)
        except TelegramError as exc:
            raise DeliveryFailure(f"send_text chat={chat_id}: {exc}") from exc
