# app/bot/core.py
from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from app.core.config import settings

default_properties = DefaultBotProperties(parse_mode=ParseMode.HTML)

_bot: Bot | None = None


def get_bot() -> Bot | None:
    """
    Returns the shared Bot, creating it on first use.
    None when no token is configured (notifications are then skipped).
    """
    global _bot
    if _bot is None and settings.TELEGRAM_BOT_TOKEN:
        _bot = Bot(token=settings.TELEGRAM_BOT_TOKEN, default=default_properties)
    return _bot


async def close_bot():
    global _bot
    if _bot is not None:
        await _bot.session.close()
        _bot = None
