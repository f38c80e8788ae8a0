# bookstore/services/message_sender.py
import requests

from bookstore.utils.retry import http_retry
from bookstore.utils.settings import WHATSAPP_API_URL, WHATSAPP_API_TOKEN, OPERATOR_WHATSAPP_NUMBER
from bookstore.utils.logging import get_logger

logger = get_logger(__name__)


class MessageSender:
    """
    Delivers composed order messages to the operator's messaging account.

    Without a configured API the deep link is logged so the operator can
    open it by hand. Returns True only when the API accepted the message.
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_token: str | None = None,
        number: str | None = None,
        timeout: int = 5,
    ):
        self.api_url = WHATSAPP_API_URL if api_url is None else api_url
        self.api_token = WHATSAPP_API_TOKEN if api_token is None else api_token
        self.number = "".join(ch for ch in (number or OPERATOR_WHATSAPP_NUMBER) if ch.isdigit())
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_token)

    @http_retry()
    def _post(self, text: str) -> requests.Response:
        resp = requests.post(
            self.api_url,
            json={"to": f"+{self.number}", "message": text},
            headers={"Authorization": f"Bearer {self.api_token}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp

    def send(self, text: str, link: str, reference: str = "") -> bool:
        if self.configured:
            # errors propagate so the outbox can retry the intent
            self._post(text)
            logger.info(f"Order message sent for {reference}")
            return True

        logger.info(f"Messaging API not configured, open manually for {reference}: {link}")
        return False
