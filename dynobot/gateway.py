from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from typing import Any, List

import discord

from services.commands import ReplySender
from services.dispatcher import Dispatcher, InboundMessage

logger = logging.getLogger(__name__)

DISCORD_MESSAGE_LIMIT = 2000
SEND_TIMEOUT_SECONDS = 15.0


def split_for_discord(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    content = (text or "").strip()
    if not content:
        return []

    chunks: List[str] = []
    remaining = content

    while len(remaining) > limit:
        cut = remaining.rfind("\n", 0, limit)
        if cut < int(limit * 0.55):
            cut = remaining.rfind(" ", 0, limit)
        if cut < int(limit * 0.40):
            cut = limit

        piece = remaining[:cut].rstrip()
        if piece:
            chunks.append(piece)
        remaining = remaining[cut:].lstrip()

    if remaining:
        chunks.append(remaining)

    return chunks


def to_inbound(message: discord.Message) -> InboundMessage:
    author = message.author
    return InboundMessage(
        body=message.content or "",
        author_id=str(author.id),
        channel_id=message.channel,
        author_label=getattr(author, "mention", "") or str(author.id),
    )


def make_sender(loop: asyncio.AbstractEventLoop) -> ReplySender:
    """Build a blocking reply function usable from worker threads.

    Sends are scheduled onto the client's event loop and awaited in order,
    so replies to one channel keep the order they were requested in.
    """

    def send(channel: Any, text: str) -> bool:
        for chunk in split_for_discord(text):
            future = asyncio.run_coroutine_threadsafe(channel.send(chunk), loop)
            try:
                future.result(timeout=SEND_TIMEOUT_SECONDS)
            except concurrent.futures.TimeoutError:
                future.cancel()
                logger.warning("Timed out sending reply to %s", channel)
                return False
            except discord.DiscordException as exc:
                logger.warning("Discord send failed: %s", exc)
                return False
        return True

    return send


class DiscordGateway:
    """Feeds Discord messages into the dispatcher."""

    def __init__(self, token: str, dispatcher: Dispatcher):
        self.token = token
        self.dispatcher = dispatcher

        intents = discord.Intents.default()
        intents.message_content = True
        self.client = discord.Client(intents=intents)
        self._setup_events()

    def _setup_events(self) -> None:
        client = self.client

        @client.event
        async def on_ready():
            logger.info("%s is connected!", client.user.name if client.user else "bot")

        @client.event
        async def on_message(message: discord.Message):
            await self.handle_message(message)

    async def handle_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        inbound = to_inbound(message)
        send = make_sender(asyncio.get_running_loop())
        # Handlers block on HTTP; keep them off the event loop.
        await asyncio.to_thread(self.dispatcher.dispatch, inbound, send)

    def run(self) -> None:
        try:
            # Logging is already configured by dynobot.logging.
            self.client.run(self.token, log_handler=None)
        except discord.DiscordException as exc:
            logger.error("Client error: %s", exc)
