from __future__ import annotations
import logging
from typing import Protocol

logger = logging.getLogger("yummio.notifier")


class Notifier(Protocol):
    def send(self, address: str, reset_token: str) -> None: ...


class LoggingNotifier:
    """Sin proveedor de correo: deja constancia en el log. El token sólo aparece a nivel DEBUG."""

    def send(self, address: str, reset_token: str) -> None:
        logger.info("Password reset token issued for %s", address)
        logger.debug("Reset token for %s: %s", address, reset_token)


_notifier: Notifier = LoggingNotifier()


def get_notifier() -> Notifier:
    return _notifier
