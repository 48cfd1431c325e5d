import sys

from scrobble_dedup.config import Settings, configure_logging
from scrobble_dedup.main import run as _run


def run():
    """Entry point for scrobble-dedup command."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    try:
        _run(settings)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
