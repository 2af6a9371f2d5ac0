from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union


GameType = Literal["categories", "spy"]
CategoryRoundState = Literal["idle", "playing", "scoring"]
SpyRoundState = Literal["role-reveal", "discussion", "voting", "guessing", "result"]
TimerKind = Literal["discussion", "guess"]

GAME_TYPES: tuple[GameType, ...] = ("categories", "spy")


@dataclass
class PhaseTimer:
    kind: TimerKind
    token: int
    state: str
    deadline_ms: int


@dataclass
class CategoryPlayer:
    id: str
    name: str
    is_host: bool = False
    disconnected: bool = False
    answers: dict[str, str] = field(default_factory=dict)
    scores: dict[str, int] = field(default_factory=dict)
    round_score: int = 0
    total_score: int = 0
    has_submitted: bool = False
    finished: bool = False


@dataclass
class SpyPlayer:
    id: str
    name: str
    is_host: bool = False
    disconnected: bool = False
    is_spy: bool = False
    confirmed: bool = False
    voted: bool = False
    voted_for: str | None = None
    round_score: int = 0
    total_score: int = 0


@dataclass
class CategoryRoom:
    code: str
    host_id: str
    game_type: GameType = "categories"
    players: list[CategoryPlayer] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    used_letters: list[str] = field(default_factory=list)
    current_letter: str | None = None
    selected_letter: str | None = None
    current_round: int = 0
    total_rounds: int = 5
    round_state: CategoryRoundState = "idle"
    scores_ready: bool = False
    game_active: bool = False
    round_start_time: int | None = None
    finisher: str | None = None
    last_activity: int = 0
    pending_timer: PhaseTimer | None = None


@dataclass
class SpyRoom:
    code: str
    host_id: str
    game_type: GameType = "spy"
    players: list[SpyPlayer] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    current_round: int = 0
    total_rounds: int = 5
    timer_duration: int = 120
    spy_count: int = 1
    current_word: str | None = None
    current_category: str | None = None
    spy_ids: list[str] = field(default_factory=list)
    used_words: list[str] = field(default_factory=list)
    round_state: SpyRoundState | None = None
    game_active: bool = False
    discussion_start_time: int | None = None
    guess_start_time: int | None = None
    guess_options: list[str] = field(default_factory=list)
    vote_counts: dict[str, int] = field(default_factory=dict)
    most_voted_id: str | None = None
    last_result: dict | None = None
    min_players: int = 3
    guess_timeout_sec: int = 30
    pending_timer: PhaseTimer | None = None
    timer_seq: int = 0
    last_activity: int = 0


Room = Union[CategoryRoom, SpyRoom]
Player = Union[CategoryPlayer, SpyPlayer]
