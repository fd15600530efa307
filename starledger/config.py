# starledger/config.py
"""
Runtime configuration, read from STARLEDGER_* environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_CHALLENGE_TAG = "starRegistry"
DEFAULT_VALIDITY_WINDOW = 300  # seconds

ENV_DB_PATH = "STARLEDGER_DB_PATH"
ENV_CHALLENGE_WINDOW = "STARLEDGER_CHALLENGE_WINDOW"
ENV_CHALLENGE_TAG = "STARLEDGER_CHALLENGE_TAG"
ENV_REJECT_REPLAY = "STARLEDGER_REJECT_REPLAY"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class LedgerConfig:
    db_path: Optional[Path] = None
    challenge_window: int = DEFAULT_VALIDITY_WINDOW
    challenge_tag: str = DEFAULT_CHALLENGE_TAG
    reject_replayed_challenges: bool = False

    def __post_init__(self):
        if self.challenge_window < 0:
            raise ValueError("challenge_window must be >= 0")
        if not self.challenge_tag or ":" in self.challenge_tag:
            raise ValueError(f"Invalid challenge_tag: {self.challenge_tag!r}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LedgerConfig":
        env = os.environ if environ is None else environ

        db_path = env.get(ENV_DB_PATH)

        raw_window = env.get(ENV_CHALLENGE_WINDOW, "").strip()
        if raw_window:
            try:
                window = int(raw_window)
            except ValueError:
                raise ValueError(f"{ENV_CHALLENGE_WINDOW} must be an integer, got {raw_window!r}")
        else:
            window = DEFAULT_VALIDITY_WINDOW

        raw_replay = env.get(ENV_REJECT_REPLAY, "").strip().lower()
        if raw_replay in _TRUE:
            reject_replay = True
        elif raw_replay in _FALSE:
            reject_replay = False
        else:
            raise ValueError(f"{ENV_REJECT_REPLAY} must be a boolean flag, got {raw_replay!r}")

        return cls(
            db_path=Path(db_path).expanduser().resolve() if db_path else None,
            challenge_window=window,
            challenge_tag=env.get(ENV_CHALLENGE_TAG) or DEFAULT_CHALLENGE_TAG,
            reject_replayed_challenges=reject_replay,
        )
