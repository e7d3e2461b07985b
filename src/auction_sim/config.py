"""Static rule constants and environment-driven service settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TEAM_NAMES: tuple[str, ...] = (
    "CSK",
    "MI",
    "RCB",
    "LSG",
    "SRH",
    "DC",
    "GT",
    "RR",
    "KKR",
    "PBKS",
)

# Match format.
BALLS_PER_OVER = 6
OVERS_PER_INNINGS = 20
MAX_LEGAL_BALLS = BALLS_PER_OVER * OVERS_PER_INNINGS
MAX_WICKETS = 10
BOWLER_OVER_QUOTA = 4
BOWLER_BALL_QUOTA = BOWLER_OVER_QUOTA * BALLS_PER_OVER
POWERPLAY_OVERS = 6
DEATH_OVERS_START = 15
MIN_BOWLING_OPTIONS = 5
IMPACT_SUB_AFTER_WICKETS = 5

# Squad composition.
STARTING_XI_SIZE = 11
MAX_OVERSEAS_IN_XI = 4
MIN_WICKETKEEPERS_IN_XI = 1

# Standings and awards.
POINTS_PER_WIN = 2
MVP_POINTS_PER_WICKET = 25
MVP_POINTS_PER_FOUR = 1
MVP_POINTS_PER_SIX = 2

WICKETKEEPER_ROLES = {"wk", "wicketkeeper"}
BOWLING_ROLE_MARKERS = ("bowl", "fast", "pace", "spin", "all", "ar")
OVERSEAS_TYPES = {"foreign", "overseas"}

# name -> (run adjustment, luck shift)
PITCH_PROFILES: dict[str, tuple[int, int]] = {
    "Batting Friendly": (1, -1),
    "Bowling Friendly": (-1, 1),
    "Balanced": (0, 0),
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AUCTION_", env_file=".env", extra="ignore")

    timer_seconds: int = 10
    tick_interval: float = 1.0
    sale_cooldown_seconds: float = 4.0
    max_teams: int = 10
    default_budget: int = 1_000_000_000
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
