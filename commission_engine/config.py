"""
Runtime settings, read from environment variables.
"""

import os
from dataclasses import dataclass

from .money import ROUND_PER_RULE, ROUNDING_POLICIES


@dataclass(frozen=True)
class EngineSettings:
    environment: str = "dev"
    log_level: str = "INFO"
    # per_rule rounds each rule's output to cents; final rounds only the total
    rounding_policy: str = ROUND_PER_RULE

    @classmethod
    def from_env(cls, environ=None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        rounding = env.get("COMMISSION_ROUNDING", ROUND_PER_RULE)
        if rounding not in ROUNDING_POLICIES:
            raise ValueError(
                f"Invalid COMMISSION_ROUNDING: {rounding}. Must be one of {', '.join(ROUNDING_POLICIES)}"
            )
        return cls(
            environment=env.get("ENVIRONMENT", "dev"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            rounding_policy=rounding,
        )
