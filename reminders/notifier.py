"""Platform capability used by the reminder core to reach users.

The manager only talks to the Notifier protocol; DiscordNotifier is the
discord.py implementation.
"""

from typing import Protocol

import discord

from logger import logger
from .config import CONFIRM_BUTTON_PREFIX
from .errors import ChannelUnavailable, DeliveryError, Undeliverable

# Discord rejects embeds whose description is longer than this
EMBED_DESCRIPTION_LIMIT = 4096


class Notifier(Protocol):
    """Send/delete capability consumed by ReminderManager."""

    async def send_confirmable(self, user_id: int, channel_id: int, message: str,
                               reminder_id: int, retries: int) -> int:
        """Send a reminder with a Confirm button, returning the message id."""
        ...

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        ...

    async def send_plain(self, channel_id: int, message: str) -> None:
        ...


def truncate(text: str, limit: int) -> str:
    """Shorten text to at most limit characters, marking the cut."""
    if len(text) <= limit:
        return text
    return text[:limit - 3] + "..."


def _is_permanent(error: discord.HTTPException) -> bool:
    """4xx other than rate limiting means the same request will fail again."""
    return 400 <= error.status < 500 and error.status != 429


def confirm_custom_id(reminder_id: int) -> str:
    return f"{CONFIRM_BUTTON_PREFIX}{reminder_id}"


def parse_confirm_custom_id(custom_id: str) -> int | None:
    """Extract the reminder id from a Confirm button custom_id."""
    if not custom_id or not custom_id.startswith(CONFIRM_BUTTON_PREFIX):
        return None
    try:
        return int(custom_id[len(CONFIRM_BUTTON_PREFIX):])
    except ValueError:
        return None


class ConfirmView(discord.ui.View):
    """Single Confirm button.

    Clicks are handled by the bot's on_interaction listener via the
    custom_id, so buttons keep working after a restart.
    """

    def __init__(self, reminder_id: int):
        super().__init__(timeout=None)
        self.add_item(discord.ui.Button(
            label="Confirm",
            style=discord.ButtonStyle.primary,
            custom_id=confirm_custom_id(reminder_id),
        ))


def build_reminder_embed(message: str, reminder_id: int, retries: int) -> discord.Embed:
    footer = "\nPlease press Confirm."
    embed = discord.Embed(
        title="Reminder",
        description=truncate(message, EMBED_DESCRIPTION_LIMIT - len(footer)) + footer,
        color=discord.Color.yellow(),
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Reminder ID", value=str(reminder_id))
    embed.add_field(name="Retries", value=str(retries))
    return embed


def build_notice_embed(message: str) -> discord.Embed:
    return discord.Embed(
        title="Reminder",
        description=truncate(message, EMBED_DESCRIPTION_LIMIT),
        color=discord.Color.red(),
        timestamp=discord.utils.utcnow(),
    )


class DiscordNotifier:
    """Notifier backed by a discord.py client."""

    def __init__(self, bot: discord.Client):
        self.bot = bot

    async def _resolve_channel(self, channel_id: int):
        channel = self.bot.get_channel(channel_id)
        if channel is not None:
            return channel

        try:
            return await self.bot.fetch_channel(channel_id)
        except (discord.NotFound, discord.Forbidden) as e:
            raise ChannelUnavailable(f"Channel {channel_id} unavailable: {e}") from e
        except discord.HTTPException as e:
            raise DeliveryError(f"Failed to fetch channel {channel_id}: {e}") from e

    async def send_confirmable(self, user_id: int, channel_id: int, message: str,
                               reminder_id: int, retries: int) -> int:
        channel = await self._resolve_channel(channel_id)
        view = ConfirmView(reminder_id)
        try:
            sent = await channel.send(
                content=f"<@{user_id}>",
                embed=build_reminder_embed(message, reminder_id, retries),
                view=view,
            )
        except discord.Forbidden as e:
            raise ChannelUnavailable(f"Cannot post in channel {channel_id}: {e}") from e
        except discord.HTTPException as e:
            if _is_permanent(e):
                raise Undeliverable(f"Discord rejected reminder {reminder_id}: {e}") from e
            raise DeliveryError(f"Failed to send reminder {reminder_id}: {e}") from e
        finally:
            # Clicks go through on_interaction; drop the view from the client's view store
            view.stop()

        logger.info(f"Sent reminder {reminder_id} to channel {channel_id} (retries={retries})")
        return sent.id

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        channel = await self._resolve_channel(channel_id)
        try:
            await channel.get_partial_message(message_id).delete()
        except discord.NotFound:
            logger.debug(f"Message {message_id} already deleted")
        except discord.HTTPException as e:
            raise DeliveryError(f"Failed to delete message {message_id}: {e}") from e

    async def send_plain(self, channel_id: int, message: str) -> None:
        channel = await self._resolve_channel(channel_id)
        try:
            await channel.send(embed=build_notice_embed(message))
        except discord.HTTPException as e:
            raise DeliveryError(f"Failed to send notice to channel {channel_id}: {e}") from e


__all__ = [
    "Notifier",
    "DiscordNotifier",
    "ConfirmView",
    "confirm_custom_id",
    "parse_confirm_custom_id",
    "truncate",
]
