# app/bot/services/notification.py
import html
import logging

from aiogram.exceptions import TelegramAPIError

from app.bot.core import get_bot
from app.core.config import settings

logger = logging.getLogger(__name__)


async def send_admin_notification(subject: str, text: str) -> bool:
    """
    Best-effort message to the admin chat.
    Missing configuration is a logged no-op; send failures are logged, never raised.
    Returns True if the message went out.
    """
    bot = get_bot()
    if bot is None or not settings.ADMIN_CHAT_ID:
        logger.info(f"Admin notifications are not configured. Skipping '{subject}'.")
        return False

    message = f"<b>{html.escape(subject)}</b>\n\n{html.escape(text)}"
    try:
        await bot.send_message(chat_id=settings.ADMIN_CHAT_ID, text=message)
        return True
    except TelegramAPIError as e:
        logger.error(f"Failed to send admin notification '{subject}': {e}")
        return False
    except Exception:
        logger.error(f"Unexpected error while sending admin notification '{subject}'", exc_info=True)
        return False


async def send_error_to_admins(error_text: str):
    """Forwards a critical API error. Telegram caps messages at 4096 chars."""
    await send_admin_notification("API error", error_text[-3500:])
