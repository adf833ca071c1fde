import asyncio
import threading
from argparse import ArgumentParser

from labelflow.core.config import load_client_config
from labelflow.core.navigation import MemoryHistory
from labelflow.core.notify import LoggingNotifier, Notifier
from labelflow.core.session import Session
from labelflow.core.transport import HttpTransport
from labelflow.util import logging

PORT = 8050


def main():
    parser = ArgumentParser(description="Run the labeling session client against a data manager API.")
    parser.add_argument("--config", default=None, help="Path to the client yaml config")
    parser.add_argument("--url", default="", help="Initial url or query string, e.g. '?view=1&task=7'")
    parser.add_argument("--ui", action="store_true", help="Serve notifications and dialogs in a Dash page")
    parser.add_argument("--port", type=int, default=PORT, help="Port of the Dash page")
    parser.add_argument("--debug", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    logging.setup_logging(debug=args.debug)

    if args.ui:
        notifier = start_ui(args.port)
    else:
        notifier = LoggingNotifier()

    try:
        asyncio.run(run_session(args.config, args.url, notifier))
    except KeyboardInterrupt:
        logging.info("Interrupted")


def start_ui(port: int) -> Notifier:
    from labelflow.ui.app import create_app
    from labelflow.ui.notifications import MantineNotifier

    notifier = MantineNotifier()
    app = create_app(notifier)

    # The page only reads the notifier, the session keeps the main thread
    threading.Thread(
        target=app.run,
        kwargs=dict(host='localhost', port=port, debug=False),
        daemon=True,
    ).start()
    logging.info(f"Serving notifications on http://localhost:{port}/")
    return notifier


async def run_session(config_path: str | None, url: str, notifier: Notifier | None = None):
    config = load_client_config(config_path)
    transport = HttpTransport(config.api)
    session = Session(
        transport,
        navigation=MemoryHistory.from_url(url),
        notifier=notifier,
        config=config,
    )

    try:
        await session.fetch_data()
        logging.info(
            f"Loaded project {session.project.title!r} with "
            f"{len(session.available_actions)} actions and {len(session.views_store.views)} views"
        )
        # Polling keeps running in the background until interrupted
        await asyncio.Event().wait()
    finally:
        session.before_destroy()
        await transport.aclose()


if __name__ == "__main__":
    main()
