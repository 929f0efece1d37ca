import logging
logging.basicConfig(level=logging.INFO)

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler

from bot.config import get_settings
from bot.handlers.quiz import CONTROLLER_KEY, register_handlers, start_command
from bot.quiz.controller import QuizController
from bot.quiz.session_store import SessionStore
from bot.quiz.source import QuestionSource
from bot.services.api_client import ApiClient
from bot.services.transport import TelegramTransport
from bot.services.update_processor import PerUserUpdateProcessor


def build_controller(application: Application, api: ApiClient) -> QuizController:
    settings = get_settings()
    return QuizController(
        store=SessionStore(),
        source=QuestionSource(api),
        transport=TelegramTransport(application.bot, mode=settings.delivery_mode),
        gateway=api,
        options=settings.quiz_options(),
    )


def main() -> None:
    settings = get_settings()
    if not settings.bot_token:
        raise RuntimeError("BOT_BOT_TOKEN is required to run the bot")
    logging.info(
        "Loaded bot settings: token_prefix=%s..., delivery_mode=%s, questions=%s, duration=%s",
        settings.bot_token[:10],
        settings.delivery_mode,
        settings.question_count,
        settings.test_duration_seconds,
    )

    api = ApiClient()

    async def post_shutdown(application: Application) -> None:
        await api.aclose()

    # users are served concurrently, each user's updates in arrival order
    application = (
        ApplicationBuilder()
        .token(settings.bot_token)
        .concurrent_updates(PerUserUpdateProcessor())
        .post_shutdown(post_shutdown)
        .build()
    )
    application.bot_data[CONTROLLER_KEY] = build_controller(application, api)
    application.add_handler(CommandHandler("start", start_command))
    register_handlers(application)

    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
