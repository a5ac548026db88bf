import logging
from typing import List, Optional

import notifiers.logging

from stalebot import config


def get_log_handlers(
    logger: logging.Logger, repo: Optional[str] = None
) -> List[logging.Handler]:
    """Attach a Telegram handler for warnings and errors, if configured.

    Failed runs surface here, so the message is prefixed with the repository
    being processed.
    """
    if config.TELEGRAM_TOKEN is None:
        return []
    handler = notifiers.logging.NotificationHandler(
        "telegram",
        defaults={
            "token": config.TELEGRAM_TOKEN,
            "chat_id": config.TELEGRAM_CHAT_ID,
        },
    )
    handler.setLevel(logging.WARNING)
    prefix = f"[stalebot {repo}] " if repo is not None else "[stalebot] "
    handler.setFormatter(logging.Formatter(prefix + "%(levelname)s - %(message)s"))
    logger.addHandler(handler)
    return [handler]
