import logging
import sys
from pathlib import Path


def setup_logging(level: str = "INFO", error_file: str | Path | None = None) -> None:
    """
    Configure the root logger once:
    - console handler on stderr at `level`
    - optional file handler that only receives ERROR records (500s and their tracebacks)
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Remove any pre-existing handlers to avoid duplicates on reload.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(fmt)
    root.addHandler(ch)

    if error_file:
        fh = logging.FileHandler(str(error_file), encoding="utf-8", delay=True)
        fh.setLevel(logging.ERROR)
        fh.setFormatter(fmt)
        root.addHandler(fh)

    # SQL echo is noisy; keep it for explicit debugging only.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
