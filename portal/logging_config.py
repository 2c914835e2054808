from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level of the `portal` logger tree.

    Notes:
    - stdlib logging only; under uvicorn the root handlers already exist.
    - `PORTAL_LOG_LEVEL=DEBUG` shows session restore/write decisions.
    - Session cookie values and tokens are never logged at any level.
    """

    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")

    logging.getLogger("portal").setLevel(numeric)
    # Scripts and `python -m` runs have no handler yet.
    if not logging.getLogger().handlers:
        logging.basicConfig(format=_FORMAT)
