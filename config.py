"""Global configuration for the Discord Reminder Bot."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Discord
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

# Sync slash commands to a single guild (instant) instead of globally
GUILD_ID = int(os.getenv("GUILD_ID", 0)) or None

# Persistent data (reminders.json lives here)
DATA_DIR = Path(os.getenv("REMINDER_BOT_DATA_DIR", Path(__file__).parent / "data"))

# Logging
LOG_DIR = Path(os.getenv("LOCALAPPDATA", ".")) / "reminder-bot" / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
