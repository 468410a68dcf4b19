"""
Channel webhooks: Telegram, Discord and Slack.

Each adapter turns the platform payload into (channel, external id, text),
runs chat commands itself, routes everything else through the message
router, and answers inline in the platform's webhook reply format so no
outbound bot API call is needed.

  POST /api/webhooks/telegram   — Bot API update, optional secret-token header
  POST /api/webhooks/discord    — Interactions endpoint (PING + slash command), Ed25519 signed
  POST /api/webhooks/slack      — Slash command, v0 request signing
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qs

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey
from sqlalchemy.ext.asyncio import AsyncSession

from superclaw.agent.chat_commands import CommandContext, get_command_registry
from superclaw.agent.message_router import get_message_router
from superclaw.agent.structured_logging import channel_log
from superclaw.config import settings
from superclaw.db import get_db
from superclaw.db.models import Channel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

DISCORD_PING = 1
DISCORD_APPLICATION_COMMAND = 2
DISCORD_CHANNEL_MESSAGE = 4


async def _reply_to(db: AsyncSession, channel: Channel, external_id: str, text: str,
                    display_name: Optional[str] = None) -> str:
    """Command reply if `text` is a chat command, else the routed agent reply."""
    ctx = CommandContext(db=db, channel=channel.value, external_id=external_id, display_name=display_name)
    reply = await get_command_registry().execute(text, ctx)
    if reply is not None:
        return reply

    result = await get_message_router().route(channel.value, external_id, text)
    return result.text


# ======================================================================
# Telegram
# ======================================================================

@router.post("/telegram")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Telegram Bot API update. The reply is returned as a `sendMessage`
    method call in the webhook response body.
    """
    if settings.telegram_webhook_secret:
        if not x_telegram_bot_api_secret_token or not hmac.compare_digest(
            x_telegram_bot_api_secret_token, settings.telegram_webhook_secret
        ):
            channel_log.warning("Invalid Telegram webhook secret")
            raise HTTPException(status_code=401, detail="Unauthorized")

    update: Dict[str, Any] = await request.json()
    message = update.get("message") or update.get("edited_message") or {}
    text = (message.get("text") or "").strip()
    sender = message.get("from") or {}
    chat_id = (message.get("chat") or {}).get("id")

    if not text or not sender.get("id") or chat_id is None:
        # Stickers, joins, callback queries, ...
        return {"ok": True}

    reply = await _reply_to(db, Channel.TELEGRAM, str(sender["id"]), text, sender.get("first_name"))
    return {"method": "sendMessage", "chat_id": chat_id, "text": reply}


# ======================================================================
# Discord
# ======================================================================

def _discord_option(data: Dict[str, Any], name: str) -> Optional[str]:
    for option in data.get("options") or []:
        if option.get("name") == name:
            return option.get("value")
    return None


def verify_discord_signature(
    public_key: str,
    timestamp: Optional[str],
    body: bytes,
    signature: Optional[str],
) -> bool:
    """Discord interaction signing: Ed25519 over timestamp + raw body."""
    if not timestamp or not signature:
        return False
    try:
        VerifyKey(bytes.fromhex(public_key)).verify(timestamp.encode() + body, bytes.fromhex(signature))
    except (BadSignatureError, ValueError):
        # ValueError covers bad hex and wrong key/signature lengths
        return False
    return True


@router.post("/discord")
async def discord_webhook(
    request: Request,
    x_signature_ed25519: Optional[str] = Header(None),
    x_signature_timestamp: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Discord interactions endpoint.

    Every request must carry a valid Ed25519 signature for the application's
    public key (DISCORD_PUBLIC_KEY); the endpoint is disabled without one.
    PING is answered with PONG. Application commands named after a chat
    command (start, agent, status, help) run that command; any other command
    routes its `message` option.
    """
    if not settings.discord_public_key:
        raise HTTPException(status_code=503, detail="Discord interactions are not configured")

    raw = await request.body()
    if not verify_discord_signature(settings.discord_public_key, x_signature_timestamp, raw, x_signature_ed25519):
        channel_log.warning("Invalid Discord request signature")
        raise HTTPException(status_code=401, detail="Invalid request signature")

    try:
        body: Dict[str, Any] = json.loads(raw)
    except ValueError:
        body = None
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Malformed request body")

    interaction_type = body.get("type")

    if interaction_type == DISCORD_PING:
        return {"type": DISCORD_PING}
    if interaction_type != DISCORD_APPLICATION_COMMAND:
        raise HTTPException(status_code=400, detail="Unsupported interaction type")

    user = (body.get("member") or {}).get("user") or body.get("user") or {}
    user_id = user.get("id")
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing user")

    data = body.get("data") or {}
    command = (data.get("name") or "").lower()
    registry = get_command_registry()
    if registry.get(command):
        text = f"/{command} {_discord_option(data, 'type') or _discord_option(data, 'message') or ''}".strip()
    else:
        text = (_discord_option(data, "message") or "").strip()

    if not text:
        content = "Please include a message."
    else:
        content = await _reply_to(db, Channel.DISCORD, str(user_id), text, user.get("username"))

    return {"type": DISCORD_CHANNEL_MESSAGE, "data": {"content": content}}


# ======================================================================
# Slack
# ======================================================================

def verify_slack_signature(
    signing_secret: str,
    timestamp: Optional[str],
    body: bytes,
    signature: Optional[str],
    max_age_seconds: int = 300,
    now: Optional[float] = None,
) -> bool:
    """Slack v0 request signing: HMAC-SHA256 over "v0:{timestamp}:{body}"."""
    if not timestamp or not signature:
        return False
    try:
        ts = int(timestamp)
    except ValueError:
        return False
    if abs((now if now is not None else time.time()) - ts) > max_age_seconds:
        return False  # Replay window

    base = f"v0:{timestamp}:".encode() + body
    expected = "v0=" + hmac.new(signing_secret.encode(), base, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


@router.post("/slack")
async def slack_webhook(
    request: Request,
    x_slack_request_timestamp: Optional[str] = Header(None),
    x_slack_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Slack slash command (`/superclaw <text>`). The text may itself be a chat
    command ("start", "status", ...). Replies are ephemeral.
    """
    body = await request.body()

    if settings.slack_signing_secret and not verify_slack_signature(
        settings.slack_signing_secret,
        x_slack_request_timestamp,
        body,
        x_slack_signature,
        settings.slack_max_request_age_seconds,
    ):
        channel_log.warning("Invalid Slack request signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        form = {k: v[0] for k, v in parse_qs(body.decode("utf-8")).items()}
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Malformed request body")
    user_id = form.get("user_id")
    text = (form.get("text") or "").strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing user_id")

    if not text:
        return {"response_type": "ephemeral", "text": "Usage: /superclaw <message> or /superclaw help"}

    first_word = text.split(None, 1)[0].lower()
    if not text.startswith("/") and get_command_registry().get(first_word):
        text = f"/{text}"

    reply = await _reply_to(db, Channel.SLACK, user_id, text, form.get("user_name"))
    return {"response_type": "ephemeral", "text": reply}
