"""Runtime settings for the command-line session, read from the environment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os


ENV_LOG_LEVEL = "INMEMDB_LOG_LEVEL"
ENV_COMMIT_ON_END = "INMEMDB_COMMIT_ON_END"
ENV_PROMPT = "INMEMDB_PROMPT"

_TRUTHY = {"1", "true", "yes", "on"}


def _as_bool(raw: Optional[str]) -> bool:
    return raw is not None and raw.strip().lower() in _TRUTHY


@dataclass
class Settings:
    """
    Session settings.

    Attributes:
        log_level: Level name for the stderr log handler
        commit_on_end: Commit still-open transactions when the session ends
        prompt: Text written before each line is read (empty when piped)
    """
    log_level: str = "WARNING"
    commit_on_end: bool = False
    prompt: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            log_level=env.get(ENV_LOG_LEVEL, cls.log_level).upper(),
            commit_on_end=_as_bool(env.get(ENV_COMMIT_ON_END)),
            prompt=env.get(ENV_PROMPT, cls.prompt),
        )
