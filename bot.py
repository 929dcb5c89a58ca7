import logging
import os
import sys
from pathlib import Path

import discord
from discord.ext import commands
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from enkabot.cog import add_showcase_cog  # noqa: E402
from enkabot.config import load_settings  # noqa: E402

logging.basicConfig(
    level=os.getenv("ENKABOT_LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("enkabot")
logging.getLogger("PIL").setLevel(logging.ERROR)
logging.getLogger("discord.gateway").setLevel(logging.WARNING)

SETTINGS = load_settings()

intents = discord.Intents.default()
intents.message_content = True


class EnkaBot(commands.Bot):
    async def setup_hook(self) -> None:
        await add_showcase_cog(self, SETTINGS)


bot = EnkaBot(command_prefix=os.getenv("ENKABOT_PREFIX", "!"), intents=intents)


@bot.event
async def on_ready():
    logger.info("Logged in as %s (%s)", bot.user, getattr(bot.user, "id", "unknown"))


@bot.event
async def on_command_error(ctx: commands.Context, error: commands.CommandError):
    if isinstance(error, commands.CommandNotFound):
        return
    if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
        await ctx.reply(f"Usage: `{ctx.clean_prefix}{ctx.command.qualified_name} {ctx.command.signature}`", mention_author=False)
        return
    logger.error("Command %s failed: %s", getattr(ctx.command, "qualified_name", "?"), error, exc_info=error)


def main():
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise RuntimeError("Missing DISCORD_TOKEN. Set it in your environment or .env file.")
    bot.run(token, log_handler=None)


if __name__ == "__main__":
    main()
