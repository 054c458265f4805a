from __future__ import annotations
import logging


def configure_logging(level: int | str = logging.INFO, *, force: bool = False) -> None:
    """
    Единая настройка root-логгера для приложения.
    level может быть числом или именем уровня ("DEBUG", "INFO", ...).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
