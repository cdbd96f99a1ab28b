"""Telegram notifier — one bot, separate chats for alerts and refresh logs."""
import html
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class TelegramNotifier:
    """Post messages through the Telegram Bot API."""

    def __init__(self, config: TelegramConfig) -> None:
        self.bot_token = config.bot_token
        self.alert_chat_id = config.alert_chat_id
        self.log_chat_id = config.log_chat_id or config.alert_chat_id

    async def _post(self, chat_id: str, text: str, silent: bool) -> bool:
        """Send already-escaped HTML text."""
        if not self.bot_token or not chat_id:
            logger.warning("Telegram bot token or chat id not configured")
            return False

        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_notification": silent,
        }
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                API_URL.format(token=self.bot_token), json=payload
            ) as response:
                if response.status != 200:
                    logger.error("Telegram sendMessage failed: HTTP %s", response.status)
                    return False
        return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Loud message to the alert chat; the subject becomes a bold header."""
        text = html.escape(message, quote=False)
        if subject:
            text = f"<b>{html.escape(subject, quote=False)}</b>\n\n{text}"
        ok = await self._post(self.alert_chat_id, text, silent=False)
        if ok:
            logger.info("Telegram alert sent")
        return ok

    async def send_log(self, message: str) -> bool:
        """Muted message to the log chat."""
        return await self._post(
            self.log_chat_id, html.escape(message, quote=False), silent=True
        )
