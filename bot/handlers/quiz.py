from __future__ import annotations

import logging

from telegram import Update
from telegram.ext import CallbackQueryHandler, CommandHandler, ContextTypes, PollAnswerHandler

from bot.quiz.controller import QuizController
from bot.services.transport import TelegramTransport

logger = logging.getLogger(__name__)

CONTROLLER_KEY = "quiz_controller"


def register_handlers(application):
    application.add_handler(CommandHandler("finish", finish_command))
    application.add_handler(CallbackQueryHandler(handle_answer, pattern=r"^ans:\d+$"))
    application.add_handler(CallbackQueryHandler(handle_control, pattern=r"^quiz:(start|skip|next)$"))
    application.add_handler(PollAnswerHandler(handle_poll_answer))


def get_controller(context: ContextTypes.DEFAULT_TYPE) -> QuizController:
    return context.application.bot_data[CONTROLLER_KEY]


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    user = update.effective_user
    if not message or not user:
        return
    profile = {"username": user.username, "first_name": user.first_name, "last_name": user.last_name}
    await get_controller(context).on_start(user.id, message.chat_id, profile)


async def finish_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    user = update.effective_user
    if not message or not user:
        return
    report = await get_controller(context).finish(user.id)
    if report is None:
        await message.reply_text("You have no active test. Send /start to begin a new one.")


async def handle_control(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    callback = update.callback_query
    if not callback:
        return
    await callback.answer()

    action = (callback.data or "").split(":", 1)[-1]
    message = callback.message
    token = TelegramTransport.token_for_message(message) if message else None
    chat_id = message.chat_id if message else callback.from_user.id
    await get_controller(context).on_control(callback.from_user.id, token, action, chat_id=chat_id)


async def handle_answer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    callback = update.callback_query
    if not callback:
        return
    await callback.answer()

    data = callback.data or ""
    try:
        _, answer_index = data.split(":", 1)
        option_index = int(answer_index)
    except ValueError:
        return

    message = callback.message
    if not message:
        return
    await get_controller(context).on_answer(
        callback.from_user.id,
        option_index,
        token=TelegramTransport.token_for_message(message),
        chat_id=message.chat_id,
    )


async def handle_poll_answer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    poll_answer = update.poll_answer
    if not poll_answer or not poll_answer.user:
        return
    # empty option_ids means the vote was retracted
    if not poll_answer.option_ids:
        return
    await get_controller(context).on_answer(
        poll_answer.user.id,
        poll_answer.option_ids[0],
        token=poll_answer.poll_id,
    )
