from application.notifications import NotificationCenter
from application.sessions import WalletSessionRegistry
from interfaces.discord.handlers import create_discord_bot
from settings import DISCORD_TOKEN, build_repositories, configure_logging


def main() -> None:
    if not DISCORD_TOKEN:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    configure_logging()
    ledger_repo, stats_repo = build_repositories()
    sessions = WalletSessionRegistry(ledger_repo, stats_repo, NotificationCenter())

    bot = create_discord_bot(sessions)
    bot.run(DISCORD_TOKEN, log_handler=None)


if __name__ == "__main__":
    main()
