"""Dialog replacements: controllers report alerts and ask for confirmation through a Notifier."""

import logging
from abc import ABC, abstractmethod
from typing import List

from bookshelf.db.cart.models.cart_schemas import Message

logger = logging.getLogger(__name__)

INFO = "info"
ERROR = "error"


class Notifier(ABC):
    @abstractmethod
    def show_alert(self, title: str, text: str):
        pass

    @abstractmethod
    def show_error(self, title: str, text: str):
        pass

    @abstractmethod
    def show_confirmation(self, title: str, text: str) -> bool:
        pass


class MessageCollector(Notifier):
    """
    Collects messages for one request so the router can return them.
    ``confirmed`` is the answer given to every confirmation prompt.
    """

    def __init__(self, confirmed: bool = True):
        self.confirmed = confirmed
        self.messages: List[Message] = []

    def show_alert(self, title: str, text: str):
        self.messages.append(Message(level=INFO, title=title, text=text))

    def show_error(self, title: str, text: str):
        logger.info(f"{title}: {text}")
        self.messages.append(Message(level=ERROR, title=title, text=text))

    def show_confirmation(self, title: str, text: str) -> bool:
        return self.confirmed

    @property
    def errors(self) -> List[Message]:
        return [message for message in self.messages if message.level == ERROR]
