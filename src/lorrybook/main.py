"""Application entry point for the LorryBook numbering backend."""

from lorrybook.app import App
from lorrybook.config import Config
from lorrybook.logging import setup_logging
from lorrybook.web.runner import run_server


def main() -> None:
    config = Config()  # type: ignore[call-arg]
    setup_logging(config.debug)
    app = App(config)
    run_server(app, config)


if __name__ == "__main__":
    main()
