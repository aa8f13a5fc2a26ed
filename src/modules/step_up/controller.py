import logging
from html import escape

from fastapi import APIRouter, Depends, Form
from fastapi.responses import HTMLResponse

from src.configuration.config import settings
from src.modules.conversations.services.conversation_service import ConversationService, get_conversation_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/confirm", tags=["step-up"])

PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><meta name="viewport" content="width=device-width, initial-scale=1">
<title>{title}</title></head>
<body style="font-family: sans-serif; max-width: 420px; margin: 40px auto; padding: 0 16px;">
{body}
</body>
</html>"""

FORM = """<h2>Confirm payment</h2>
<p>Enter your PIN to approve this action.</p>
<form method="post">
  <input type="password" name="pin" inputmode="numeric" pattern="[0-9]*" maxlength="6" autofocus required>
  <button type="submit">Confirm</button>
</form>"""


def render(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(PAGE.format(title=escape(f"{settings.APP_NAME} - {title}"), body=body))


@router.get("/{token}", response_class=HTMLResponse, summary="PIN confirmation form")
async def confirm_form(token: str, service: ConversationService = Depends(get_conversation_service)):
    if service.peek_step_up(token) is None:
        return render("Link expired", "<p>This link has expired or was already used.</p>")
    return render("Confirm", FORM)


@router.post("/{token}", response_class=HTMLResponse, summary="Submit PIN")
async def confirm_submit(
    token: str,
    pin: str = Form(...),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        result = await service.handle_step_up(token, pin.strip())
    except Exception:
        logger.exception("Step-up confirmation failed")
        result = "Something went wrong. Try again."
    paragraphs = "".join(f"<p>{escape(line)}</p>" for line in result.splitlines() if line)
    return render("Result", paragraphs)
