"""Process-wide settings, read once from the environment at startup.

The geometry engine never reads the environment itself; the application and
the CLI build a ``Settings`` and hand the relevant pieces to the engine.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .services.ephem import BACKENDS
from .services.houses import supported_systems

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    ephemeris_backend: str = "swisseph"
    ephemeris_dir: Optional[str] = None
    default_house_system: str = "placidus"
    logging_enabled: bool = False
    log_level: str = "INFO"
    app_env: Optional[str] = None
    preview_origin: Optional[str] = None

    @property
    def is_dev(self) -> bool:
        return self.app_env is None or self.app_env.lower() in {"dev", "development"}

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        backend = os.getenv("EPHEMERIS_BACKEND", "swisseph").strip().lower()
        # legacy spelling of the built-in Moshier series
        if backend == "moseph":
            backend = "moshier"
        if backend not in BACKENDS:
            raise ValueError(f"EPHEMERIS_BACKEND must be one of {', '.join(BACKENDS)}; got {backend!r}")

        house_system = os.getenv("DEFAULT_HOUSE_SYSTEM", "placidus").strip().lower()
        engine = "analytic" if backend == "approximate" else "swisseph"
        if house_system not in supported_systems(engine):
            raise ValueError(
                f"DEFAULT_HOUSE_SYSTEM {house_system!r} is not supported by the {engine} house engine"
            )

        level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL {level!r} is not a logging level")

        return cls(
            ephemeris_backend=backend,
            ephemeris_dir=os.getenv("EPHEMERIS_DIR") or None,
            default_house_system=house_system,
            logging_enabled=os.getenv("LOGGING_ENABLED", "false").lower() in _TRUE,
            log_level=level,
            app_env=os.getenv("APP_ENV") or None,
            preview_origin=os.getenv("PREVIEW_ORIGIN") or None,
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
