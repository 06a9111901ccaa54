"""Discord Reminder Bot - Main Bot.

Slash commands to add, list and delete reminders. Reminders are posted with
a Confirm button and re-sent until someone confirms or retries run out.
"""

from datetime import datetime

import discord
from discord import app_commands
from discord.ext import commands

from logger import logger
from config import DISCORD_TOKEN, GUILD_ID
from reminders import (
    AlreadyHandled,
    DiscordNotifier,
    InvalidTime,
    NotFound,
    NotOwner,
    NotReady,
    ReminderManager,
    ReminderScheduler,
    ReminderStore,
    StoreError,
)
from reminders import config as reminder_config
from reminders.notifier import EMBED_DESCRIPTION_LIMIT, parse_confirm_custom_id, truncate
from reminders.parser import FORMAT_HINT

# Initialize bot
intents = discord.Intents.default()
bot = commands.Bot(command_prefix="/", intents=intents)

# Initialize reminder core
scheduler = ReminderScheduler()
manager = ReminderManager(
    store=ReminderStore(reminder_config.REMINDERS_FILE),
    scheduler=scheduler,
    notifier=DiscordNotifier(bot),
    retry_interval=reminder_config.RETRY_INTERVAL,
    max_retries=reminder_config.MAX_RETRIES,
    send_failure_retry=reminder_config.SEND_FAILURE_RETRY,
    max_send_failures=reminder_config.MAX_SEND_FAILURES,
    tz=reminder_config.REMINDER_TIMEZONE,
    history_size=reminder_config.FINISHED_HISTORY_SIZE,
)

NOT_READY_REPLY = "Reminders are still loading, please try again in a moment."


def format_local_time(when: datetime) -> str:
    """Render an instant in the configured reminder timezone."""
    return when.astimezone(reminder_config.REMINDER_TIMEZONE).strftime("%Y/%m/%d %H:%M:%S")


def fit_lines(lines: list[str], limit: int) -> str:
    """Join lines, replacing the tail with "... and N more" when the text would exceed limit."""
    text = "\n".join(lines)
    if len(text) <= limit:
        return text

    kept = []
    for index, line in enumerate(lines):
        more = f"... and {len(lines) - index} more"
        if len("\n".join(kept + [line, more])) > limit:
            break
        kept.append(line)
    return "\n".join(kept + [more])


@bot.event
async def setup_hook():
    """Restore reminders before the gateway connects and commands can arrive."""
    scheduler.start()
    try:
        reminder_count = await manager.start()
    except StoreError as e:
        # Carrying on would overwrite the unreadable store with an empty one
        logger.critical(f"Cannot load reminders, shutting down: {e}")
        raise

    logger.info(f"{reminder_count} reminders restored")


@bot.event
async def on_ready():
    """Called when bot is connected and ready."""
    logger.info(f"Logged in as {bot.user}")

    # Sync slash commands with Discord
    try:
        if GUILD_ID:
            guild = discord.Object(id=GUILD_ID)
            bot.tree.copy_global_to(guild=guild)
            synced = await bot.tree.sync(guild=guild)
        else:
            synced = await bot.tree.sync()
        logger.info(f"Synced {len(synced)} slash commands")
    except Exception as e:
        logger.error(f"Failed to sync slash commands: {e}")


@bot.event
async def on_interaction(interaction: discord.Interaction):
    """Route Confirm button clicks (including on messages sent before a restart)."""
    if interaction.type != discord.InteractionType.component:
        return

    reminder_id = parse_confirm_custom_id((interaction.data or {}).get("custom_id", ""))
    if reminder_id is None:
        return

    await handle_confirm(interaction, reminder_id)


# --- Handlers ---

async def handle_add(interaction: discord.Interaction, time: str, message: str):
    """Create a reminder in the invoking channel."""
    try:
        reminder = await manager.create(
            user_id=interaction.user.id,
            channel_id=interaction.channel_id,
            guild_id=interaction.guild_id,
            time_text=time,
            message=message,
        )
    except InvalidTime:
        await interaction.response.send_message(
            f"Please give a valid future time (e.g. {FORMAT_HINT}).",
            ephemeral=True
        )
        return
    except StoreError as e:
        logger.error(f"Failed to save reminder for {interaction.user}: {e}")
        await interaction.response.send_message("Failed to save the reminder, please try again.", ephemeral=True)
        return
    except NotReady:
        await interaction.response.send_message(NOT_READY_REPLY, ephemeral=True)
        return

    embed = discord.Embed(
        title="Reminder set",
        description=(
            f"ID: {reminder.id}\n"
            f"Time: {format_local_time(reminder.time)}\n"
            f"Message: {truncate(reminder.message, EMBED_DESCRIPTION_LIMIT - 100)}"
        ),
        color=discord.Color.green(),
        timestamp=discord.utils.utcnow(),
    )
    await interaction.response.send_message(embed=embed, ephemeral=True)


async def handle_list(interaction: discord.Interaction):
    """List the caller's active reminders."""
    try:
        reminders = await manager.list_reminders(interaction.user.id)
    except NotReady:
        await interaction.response.send_message(NOT_READY_REPLY, ephemeral=True)
        return

    if not reminders:
        await interaction.response.send_message("You have no reminders set.", ephemeral=True)
        return

    lines = [
        f"ID: {r.id} - {format_local_time(r.time)} - {truncate(r.message, 100)} - retries: {r.retries}"
        for r in reminders
    ]
    embed = discord.Embed(
        title="Your reminders",
        description=fit_lines(lines, EMBED_DESCRIPTION_LIMIT),
        color=discord.Color.blue(),
        timestamp=discord.utils.utcnow(),
    )
    await interaction.response.send_message(embed=embed, ephemeral=True)


async def handle_delete(interaction: discord.Interaction, reminder_id: int):
    """Delete one of the caller's reminders."""
    try:
        await manager.delete(interaction.user.id, reminder_id)
    except NotFound:
        await interaction.response.send_message(f"No reminder found with ID {reminder_id}.", ephemeral=True)
        return
    except NotOwner:
        await interaction.response.send_message(f"Reminder {reminder_id} belongs to someone else.", ephemeral=True)
        return
    except StoreError as e:
        logger.error(f"Failed to persist deletion of reminder {reminder_id}: {e}")
        await interaction.response.send_message("Failed to save the deletion, please try again.", ephemeral=True)
        return
    except NotReady:
        await interaction.response.send_message(NOT_READY_REPLY, ephemeral=True)
        return

    embed = discord.Embed(
        title="Reminder deleted",
        description=f"Deleted reminder (ID: {reminder_id}).",
        color=discord.Color.red(),
        timestamp=discord.utils.utcnow(),
    )
    await interaction.response.send_message(embed=embed, ephemeral=True)


async def handle_confirm(interaction: discord.Interaction, reminder_id: int):
    """Acknowledge a reminder from its Confirm button."""
    try:
        await manager.acknowledge(reminder_id)
    except AlreadyHandled:
        await interaction.response.send_message(
            "This reminder has already been confirmed or deleted.",
            ephemeral=True
        )
        return
    except StoreError as e:
        logger.error(f"Failed to persist confirmation of reminder {reminder_id}: {e}")
        await interaction.response.send_message(
            "Could not save the confirmation, please try again.",
            ephemeral=True
        )
        return
    except NotReady:
        await interaction.response.send_message(NOT_READY_REPLY, ephemeral=True)
        return

    logger.info(f"Reminder {reminder_id} confirmed by {interaction.user}")
    embed = discord.Embed(
        title="Reminder confirmed",
        description="Thanks, this reminder is done.",
        color=discord.Color.green(),
        timestamp=discord.utils.utcnow(),
    )
    await interaction.response.edit_message(embed=embed, view=None)


# --- Slash commands ---

remind_group = app_commands.Group(
    name="remind",
    description="Set, list and delete reminders",
    default_permissions=discord.Permissions(manage_messages=True),
)


@remind_group.command(name="add", description="Add a new reminder")
@app_commands.describe(
    time=f"When to remind (e.g. {FORMAT_HINT})",
    message="What to remind you about"
)
async def cmd_remind_add(
    interaction: discord.Interaction,
    time: str,
    message: app_commands.Range[str, 1, reminder_config.MAX_MESSAGE_LENGTH],
):
    await handle_add(interaction, time, message)


@remind_group.command(name="list", description="List your reminders")
async def cmd_remind_list(interaction: discord.Interaction):
    await handle_list(interaction)


@remind_group.command(name="delete", description="Delete a reminder")
@app_commands.describe(id="ID of the reminder to delete")
async def cmd_remind_delete(interaction: discord.Interaction, id: int):
    await handle_delete(interaction, id)


bot.tree.add_command(remind_group)


@bot.event
async def on_error(event, *args, **kwargs):
    """Handle errors."""
    logger.exception(f"Bot error in {event}: {args}")


def main():
    """Entry point."""
    if not DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN not set")
        return

    logger.info("Starting Discord Reminder Bot...")
    try:
        bot.run(DISCORD_TOKEN)
    finally:
        scheduler.shutdown()


if __name__ == "__main__":
    main()
