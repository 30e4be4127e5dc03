# memory_puzzle/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from .errors import ConfigurationError

ENV_PREFIX = "MEMORY_PUZZLE_"


@dataclass(frozen=True)
class Timings:
    """
    Delay constants in milliseconds.

    flip_ms            reveal hold before mismatch/match feedback shows
    mismatch_pause_ms  extra hold after that before a mismatch flips back and unlocks
    match_pause_ms     extra pacing an automated driver waits after a pair
    bad_pulse_ms       how long the "bad" marker stays up
    good_pulse_ms      how long the "good" marker stays up
    tick_ms            display refresh cadence for the clock
    tick_idle_ms       display ticks pause once nobody has read or played for this long
    solver_gap_ms      extra wait between the solver's two reveals
    """

    flip_ms: int = 650
    mismatch_pause_ms: int = 900
    match_pause_ms: int = 300
    bad_pulse_ms: int = 800
    good_pulse_ms: int = 2000
    tick_ms: int = 400
    tick_idle_ms: int = 30_000
    solver_gap_ms: int = 120
    solver_max_iterations: int = 200

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"{f.name} must be a positive integer, got {value!r}")

    @property
    def mismatch_reset_ms(self) -> int:
        return self.flip_ms + self.mismatch_pause_ms

    @property
    def after_match_ms(self) -> int:
        return self.flip_ms + self.match_pause_ms

    @property
    def solver_reveal_gap_ms(self) -> int:
        return self.flip_ms + self.solver_gap_ms

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Timings":
        """Build timings, letting MEMORY_PUZZLE_<FIELD> variables override defaults."""
        env = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[f.name] = int(raw)
            except ValueError:
                raise ConfigurationError(f"{ENV_PREFIX}{f.name.upper()} is not an integer: {raw!r}") from None
        return cls(**overrides)


DEFAULT_TIMINGS = Timings()
