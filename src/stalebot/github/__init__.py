from stalebot.github.api import API

__all__ = ["API"]
