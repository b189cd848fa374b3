# main.py
# Prints the home list (ordered groups, ranks, countdowns) for one user.
#
# .env (project root):
#   BACKEND_URL=https://<project>.example.co
#   BACKEND_ANON_KEY=...
#   LOCAL_DB_URL=sqlite:///./groupchallenge.db
#
# Usage:
#   python main.py <user_id> [--token ACCESS_TOKEN] [--language en]

import argparse
import asyncio
import logging
import sys

from config import LOG_LEVEL
from client.backend import get_backend
from client.db import Base, init_db
from client.home import HomeFeed
from client.kv import KeyValueStore
from client.order_store import OrderStore
from client.settings import LocalSettings

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger("groupchallenge")


async def show_home(user_id: str, token: str | None, language: str | None) -> int:
    init_db(Base)
    store = KeyValueStore()
    lang = language or LocalSettings(store).get_language()
    feed = HomeFeed(get_backend(token), OrderStore(store), user_id, language=lang)
    feed.mount()
    try:
        applied = await feed.on_focus()
    finally:
        feed.unmount()

    notice = feed.take_notice()
    if notice:
        log.warning("%s (%s)", notice.message, notice.error)
    if not applied:
        return 1
    for item in feed.items:
        challenge = item.challenge.name if item.challenge else "-"
        print(f"{item.group.name or item.group_id}\t{challenge}\t{item.rank_label}\t{item.countdown_label or ''}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Show the ordered group list for a user")
    parser.add_argument("user_id")
    parser.add_argument("--token", default=None, help="user access token")
    parser.add_argument("--language", choices=["he", "en"], default=None)
    args = parser.parse_args()
    return asyncio.run(show_home(args.user_id, args.token, args.language))


if __name__ == "__main__":
    sys.exit(main())
