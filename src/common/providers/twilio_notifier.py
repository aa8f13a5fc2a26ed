import asyncio
import logging

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

from src.common.enums import Channel
from src.common.exceptions import ProviderError
from src.common.resilience import provider_call
from src.configuration.config import settings

logger = logging.getLogger(__name__)


class TwilioNotifier:
    """Outbound SMS and WhatsApp messages through Twilio."""

    name = "twilio"

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
                raise ProviderError("Twilio credentials not configured", provider=self.name)
            self._client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        return self._client

    async def send(self, phone: str, text: str, channel: Channel = Channel.WHATSAPP) -> str:
        """Send a message and return its Twilio SID."""
        if channel == Channel.WHATSAPP:
            from_, to = f"whatsapp:{settings.TWILIO_WHATSAPP_NUMBER}", f"whatsapp:{phone}"
        else:
            from_, to = settings.TWILIO_PHONE_NUMBER, phone

        try:
            with provider_call(self.name):
                message = await asyncio.to_thread(self.client.messages.create, body=text, from_=from_, to=to)
        except TwilioRestException as e:
            logger.error(f"Twilio rejected message to ...{phone[-4:]}: {e.msg}")
            raise ProviderError(str(e.msg), provider=self.name) from e

        logger.info(f"{channel.value} message {message.sid} sent to ...{phone[-4:]}")
        return message.sid
