from application.notifications import NotificationCenter
from application.sessions import WalletSessionRegistry
from interfaces.telegram.handlers import create_telegram_bot
from settings import TELEGRAM_TOKEN, build_repositories, configure_logging


def main() -> None:
    if not TELEGRAM_TOKEN:
        raise RuntimeError("TELEGRAM_TOKEN environment variable is not set.")

    configure_logging()
    ledger_repo, stats_repo = build_repositories()
    sessions = WalletSessionRegistry(ledger_repo, stats_repo, NotificationCenter())

    bot = create_telegram_bot(TELEGRAM_TOKEN, sessions)
    bot.infinity_polling()


if __name__ == "__main__":
    main()
