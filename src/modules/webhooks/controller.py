import logging
from typing import Any
from xml.sax.saxutils import escape

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import Response
from twilio.request_validator import RequestValidator

from src.common.enums import Channel
from src.common.providers import get_providers
from src.configuration.config import settings
from src.modules.conversations.services.conversation_service import ConversationService, get_conversation_service
from src.modules.identities.services.phone import mask_phone
from src.modules.webhooks.services.incoming_transfer_service import IncomingTransferService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

GENERIC_ERROR = "Something went wrong. Try again."


def twiml(text: str) -> Response:
    return Response(
        content=f"<Response><Message>{escape(text)}</Message></Response>",
        media_type="text/xml",
    )


async def verify_twilio_signature(request: Request) -> dict[str, Any]:
    """Parse the form body, checking X-Twilio-Signature when enabled."""
    form = dict(await request.form())
    if settings.VERIFY_TWILIO_SIGNATURE:
        validator = RequestValidator(settings.TWILIO_AUTH_TOKEN)
        signature = request.headers.get("X-Twilio-Signature", "")
        if not validator.validate(str(request.url), form, signature):
            logger.warning("Rejected webhook with invalid Twilio signature")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")
    return form


def get_incoming_transfer_service() -> IncomingTransferService:
    return IncomingTransferService(get_providers().notifier)


@router.post("/sms", summary="Inbound SMS", response_class=Response)
async def sms_webhook(
    form: dict[str, Any] = Depends(verify_twilio_signature),
    service: ConversationService = Depends(get_conversation_service),
):
    """Answer an SMS synchronously with TwiML."""
    sender = str(form.get("From", ""))
    body = str(form.get("Body", "")).strip()
    try:
        reply = await service.handle_inbound_message(sender, body, Channel.SMS)
    except Exception:
        logger.exception(f"SMS from {mask_phone(sender)} failed")
        reply = GENERIC_ERROR
    return twiml(reply)


async def process_whatsapp_message(service: ConversationService, sender: str, body: str) -> None:
    notifier = service.providers.notifier
    try:
        reply = await service.handle_inbound_message(sender, body, Channel.WHATSAPP)
    except Exception:
        logger.exception(f"WhatsApp from {mask_phone(sender)} failed")
        reply = GENERIC_ERROR
    try:
        await notifier.send(sender, reply, Channel.WHATSAPP)
    except Exception as e:
        logger.error(f"WhatsApp reply to {mask_phone(sender)} not delivered: {e}")


@router.post("/whatsapp", summary="Inbound WhatsApp message", status_code=status.HTTP_200_OK)
async def whatsapp_webhook(
    background_tasks: BackgroundTasks,
    form: dict[str, Any] = Depends(verify_twilio_signature),
    service: ConversationService = Depends(get_conversation_service),
):
    """Acknowledge immediately; the reply is delivered as an outbound message."""
    sender = str(form.get("From", "")).replace("whatsapp:", "")
    body = str(form.get("Body", "")).strip()
    background_tasks.add_task(process_whatsapp_message, service, sender, body)
    return Response(status_code=status.HTTP_200_OK)


@router.post("/webhook/helius", summary="Wallet balance-change events", status_code=status.HTTP_200_OK)
async def helius_webhook(
    request: Request,
    service: IncomingTransferService = Depends(get_incoming_transfer_service),
):
    try:
        events = await request.json()
        await service.handle_events(events)
    except Exception:
        logger.exception("Balance-change webhook failed")
    return Response(status_code=status.HTTP_200_OK)
