"""YAML config for Rug Pull, parsed into dataclasses."""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from rugpull.storage import DEFAULT_SAVE_FILE

MEME_COINS = [
    "$COPE", "$FOMO", "$YOLO", "$MOON", "$REKT",
    "$DEGEN", "$WAGMI", "$NGMI", "$HODL", "$PUMP",
    "$DUMP", "$APE", "$GRUG", "$PONZI", "$SCAM",
    "$RUGPULL", "$BASED", "$CRINGE", "$GIGACHAD", "$WOJAK",
]


@dataclass
class GameConfig:
    starting_balance: float = 1000.0
    bet_amount: int = 100
    countdown_seconds: float = 3.0
    results_seconds: float = 3.0
    min_duration: int = 15
    max_duration: int = 18
    frame_interval: float = 1 / 30
    double_down_cutoff: float = 0.70
    coins: list[str] = field(default_factory=lambda: list(MEME_COINS))
    save_file: str = DEFAULT_SAVE_FILE
    restore_balance: bool = True
    seed: int | None = None


@dataclass
class DeckConfig:
    brightness: int = 60
    bet_step: int = 10


@dataclass
class AppConfig:
    game: GameConfig = field(default_factory=GameConfig)
    deck: DeckConfig = field(default_factory=DeckConfig)


def load_config(path: Path) -> AppConfig:
    """Load config from YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    game = GameConfig(**{k: v for k, v in (raw.get("game") or {}).items()})
    deck = DeckConfig(**{k: v for k, v in (raw.get("deck") or {}).items()})

    if game.min_duration > game.max_duration:
        raise ValueError("game.min_duration must not exceed game.max_duration")
    if len(game.coins) < 2:
        raise ValueError("game.coins needs at least two names")

    return AppConfig(game=game, deck=deck)
