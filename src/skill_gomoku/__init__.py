"""Top-level package for the skill Gomoku rule engine."""

__all__ = [
    "config",
    "errors",
    "board",
    "state",
    "tracker",
    "validator",
    "skills",
    "effects",
    "executor",
    "turns",
    "session",
    "controller",
]
