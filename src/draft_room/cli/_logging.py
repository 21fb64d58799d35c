import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"

# Flask's development server logs every request line at INFO.
_NOISY_LOGGERS = ("werkzeug",)


def configure_logging(*, verbose: bool = False) -> None:
    """Send draft-room logs to stderr, replacing any handlers already installed.

    The thread name is included so concurrent pick requests can be told apart
    when the JSON server runs threaded.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)

    quiet_level = logging.NOTSET if verbose else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
