from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

_FAILURE_KIND_NAMES = {"TIMEOUT", "UNAVAILABLE", "GENERIC"}
_LOG_LEVEL_NAMES = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_opt_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return int(value)


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _getenv_opt_kind(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    kind = value.strip().upper()
    if kind not in _FAILURE_KIND_NAMES:
        raise ValueError(f"{name} must be one of {sorted(_FAILURE_KIND_NAMES)}, got {value!r}")
    return kind


def _getenv_csv(name: str, default: str) -> tuple[str, ...]:
    raw = _getenv_str(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class AppConfig:
    TASKNOTES_NOTE_MAX_ATTEMPTS: int
    TASKNOTES_NOTE_FAILURE_RATE: float
    TASKNOTES_NOTE_DELAY_MIN_MS: int
    TASKNOTES_NOTE_DELAY_MAX_MS: int
    TASKNOTES_NOTE_BACKOFF_BASE_MS: int
    TASKNOTES_NOTE_RANDOM_SEED: Optional[int]
    TASKNOTES_TEST_INJECT_NOTE_FAILURE: Optional[str]
    TASKNOTES_PAGE_SIZE_DEFAULT: int
    TASKNOTES_PAGE_SIZE_MAX: int
    TASKNOTES_CORS_ORIGINS: tuple[str, ...]
    TASKNOTES_LOG_LEVEL: str

    def network_delay_ms(self) -> tuple[int, int]:
        return (self.TASKNOTES_NOTE_DELAY_MIN_MS, self.TASKNOTES_NOTE_DELAY_MAX_MS)


def _validate(cfg: AppConfig) -> AppConfig:
    if cfg.TASKNOTES_NOTE_MAX_ATTEMPTS < 1:
        raise ValueError("TASKNOTES_NOTE_MAX_ATTEMPTS must be >= 1.")
    if not 0.0 <= cfg.TASKNOTES_NOTE_FAILURE_RATE <= 1.0:
        raise ValueError("TASKNOTES_NOTE_FAILURE_RATE must be within [0, 1].")
    if cfg.TASKNOTES_NOTE_DELAY_MIN_MS < 0 or cfg.TASKNOTES_NOTE_DELAY_MAX_MS < cfg.TASKNOTES_NOTE_DELAY_MIN_MS:
        raise ValueError("Note delay range must satisfy 0 <= min <= max.")
    if cfg.TASKNOTES_NOTE_BACKOFF_BASE_MS < 0:
        raise ValueError("TASKNOTES_NOTE_BACKOFF_BASE_MS must be >= 0.")
    if not 1 <= cfg.TASKNOTES_PAGE_SIZE_DEFAULT <= cfg.TASKNOTES_PAGE_SIZE_MAX:
        raise ValueError("Page size default must be within [1, TASKNOTES_PAGE_SIZE_MAX].")
    if cfg.TASKNOTES_LOG_LEVEL not in _LOG_LEVEL_NAMES:
        raise ValueError(f"TASKNOTES_LOG_LEVEL must be one of {sorted(_LOG_LEVEL_NAMES)}, got {cfg.TASKNOTES_LOG_LEVEL!r}")
    return cfg


def load_config() -> AppConfig:
    return _validate(
        AppConfig(
            TASKNOTES_NOTE_MAX_ATTEMPTS=_getenv_int("TASKNOTES_NOTE_MAX_ATTEMPTS", 3),
            TASKNOTES_NOTE_FAILURE_RATE=_getenv_float("TASKNOTES_NOTE_FAILURE_RATE", 0.2),
            TASKNOTES_NOTE_DELAY_MIN_MS=_getenv_int("TASKNOTES_NOTE_DELAY_MIN_MS", 1000),
            TASKNOTES_NOTE_DELAY_MAX_MS=_getenv_int("TASKNOTES_NOTE_DELAY_MAX_MS", 4000),
            TASKNOTES_NOTE_BACKOFF_BASE_MS=_getenv_int("TASKNOTES_NOTE_BACKOFF_BASE_MS", 1000),
            TASKNOTES_NOTE_RANDOM_SEED=_getenv_opt_int("TASKNOTES_NOTE_RANDOM_SEED"),
            TASKNOTES_TEST_INJECT_NOTE_FAILURE=_getenv_opt_kind("TASKNOTES_TEST_INJECT_NOTE_FAILURE"),
            TASKNOTES_PAGE_SIZE_DEFAULT=_getenv_int("TASKNOTES_PAGE_SIZE_DEFAULT", 5),
            TASKNOTES_PAGE_SIZE_MAX=_getenv_int("TASKNOTES_PAGE_SIZE_MAX", 100),
            TASKNOTES_CORS_ORIGINS=_getenv_csv("TASKNOTES_CORS_ORIGINS", "*"),
            TASKNOTES_LOG_LEVEL=_getenv_str("TASKNOTES_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
    )
