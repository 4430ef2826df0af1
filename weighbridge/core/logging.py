import logging

from weighbridge.core.config import settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the `weighbridge` logger tree."""
    root = logging.getLogger("weighbridge")
    root.setLevel((level or settings.log_level).upper())
    if any(getattr(h, "_weighbridge", False) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._weighbridge = True  # type: ignore[attr-defined]
    root.addHandler(handler)
