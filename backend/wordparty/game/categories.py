"""Word-categories round engine.

Every public function takes the store plus the acting connection, validates
first, then mutates the room and returns the resulting :class:`Effects`.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Any

from ..errors import NotFoundError, PreconditionError, ValidationError
from .models import CategoryPlayer, CategoryRoom
from .service import Effects, active_players, find_player, now_ms, players_payload, require_host, require_player, standings, touch
from .store import RoomStore
from .words import ARABIC_LETTERS, DEFAULT_CATEGORIES, pick_letter


logger = logging.getLogger(__name__)

MIN_CATEGORIES = 3
MAX_CATEGORIES = 12
MIN_ROUNDS = 1
MAX_ROUNDS = 20
DEFAULT_ROUNDS = 5
MAX_ANSWER_LENGTH = 64
MAX_CATEGORY_KEY_LENGTH = 32
ALLOWED_OVERRIDE_SCORES = (0, 5, 10)


def normalize_answer(text: Any) -> str:
    """Case- and diacritic-insensitive form used for every comparison."""
    if not isinstance(text, str):
        return ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", stripped).strip().casefold()


def score_answers(
    answers_by_player: dict[str, dict[str, str]],
    categories: list[str],
    letter: str,
) -> dict[str, dict[str, int]]:
    """Score each player's answers against everyone else's.

    0 for an empty answer or one not starting with ``letter``; 5 when another
    player gave the same normalized answer in that category; 10 otherwise.
    """
    norm_letter = normalize_answer(letter)
    normalized = {
        pid: {cat: normalize_answer(answers.get(cat, "")) for cat in categories}
        for pid, answers in answers_by_player.items()
    }

    scores: dict[str, dict[str, int]] = {}
    for pid, answers in normalized.items():
        scores[pid] = {}
        for cat in categories:
            ans = answers[cat]
            if not ans or not norm_letter or not ans.startswith(norm_letter):
                scores[pid][cat] = 0
                continue
            duplicate = any(other != pid and normalized[other][cat] == ans for other in normalized)
            scores[pid][cat] = 5 if duplicate else 10
    return scores


def _room(store: RoomStore, code: str) -> CategoryRoom:
    room = store.get_room(code, "categories")
    if room is None:
        raise NotFoundError()
    return room  # type: ignore[return-value]


def _validate_rounds(raw: Any) -> int:
    if raw is None:
        return DEFAULT_ROUNDS
    if not isinstance(raw, int) or isinstance(raw, bool) or not MIN_ROUNDS <= raw <= MAX_ROUNDS:
        raise ValidationError("invalid_rounds", f"Rounds must be between {MIN_ROUNDS} and {MAX_ROUNDS}")
    return raw


def _validate_categories(raw: Any) -> list[str]:
    if raw is None:
        return list(DEFAULT_CATEGORIES)
    if not isinstance(raw, list):
        raise ValidationError("invalid_categories", "Categories must be a list")

    cats: list[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        key = item.strip()[:MAX_CATEGORY_KEY_LENGTH]
        if key and key not in cats:
            cats.append(key)

    if not MIN_CATEGORIES <= len(cats) <= MAX_CATEGORIES:
        raise ValidationError(
            "invalid_categories",
            f"Pick between {MIN_CATEGORIES} and {MAX_CATEGORIES} categories",
        )
    return cats


def _clean_answers(room: CategoryRoom, raw: dict[str, Any] | None) -> dict[str, str]:
    raw = raw or {}
    cleaned = {}
    for cat in room.categories:
        value = raw.get(cat, "")
        cleaned[cat] = value.strip()[:MAX_ANSWER_LENGTH] if isinstance(value, str) else ""
    return cleaned


def scoring_payload(room: CategoryRoom) -> dict:
    return {
        "players": [
            {
                "id": p.id,
                "name": p.name,
                "answers": dict(p.answers),
                "scores": dict(p.scores),
                "roundScore": p.round_score,
                "totalScore": p.total_score,
                "disconnected": p.disconnected,
            }
            for p in room.players
        ],
        "currentRound": room.current_round,
        "totalRounds": room.total_rounds,
        "categories": list(room.categories),
        "letter": room.current_letter,
        "hostId": room.host_id,
    }


def round_started_payload(room: CategoryRoom) -> dict:
    return {
        "round": room.current_round,
        "totalRounds": room.total_rounds,
        "letter": room.current_letter,
        "startTime": room.round_start_time,
        "categories": list(room.categories),
    }


def start_game(
    store: RoomStore,
    code: str,
    conn_id: str,
    total_rounds: int | None = None,
    categories: list[str] | None = None,
) -> Effects:
    with store.lock:
        room = _room(store, code)
        require_host(room, conn_id)
        if room.game_active:
            raise PreconditionError("game_in_progress", "A game is already running")
        rounds = _validate_rounds(total_rounds)
        cats = _validate_categories(categories)

        room.total_rounds = rounds
        room.categories = cats
        room.current_round = 1
        room.used_letters = []
        room.game_active = True
        for p in room.players:
            p.total_score = 0

        return _start_round(store, room)


def _start_round(store: RoomStore, room: CategoryRoom) -> Effects:
    fx = Effects()
    letter, used = pick_letter(room.used_letters, room.selected_letter, store.rng)
    room.current_letter = letter
    room.used_letters = used
    room.selected_letter = None
    room.round_state = "playing"
    room.scores_ready = False
    room.finisher = None
    room.round_start_time = now_ms()
    touch(room)

    for p in room.players:
        _reset_round_fields(room, p)

    fx.emit("round-started", round_started_payload(room), to=room.code)
    logger.info(
        "round started code=%s round=%s/%s letter=%s categories=%s",
        room.code,
        room.current_round,
        room.total_rounds,
        letter,
        ",".join(room.categories),
    )
    return fx


def _reset_round_fields(room: CategoryRoom, player: CategoryPlayer) -> None:
    player.answers = {cat: "" for cat in room.categories}
    player.scores = {}
    player.round_score = 0
    player.has_submitted = False
    player.finished = False


def on_player_joined(room: CategoryRoom, player: CategoryPlayer) -> None:
    """Fit a newcomer into whatever round is in progress."""
    if not room.game_active:
        return
    _reset_round_fields(room, player)
    if room.round_state == "scoring":
        # Answers are already being collected; a newcomer has nothing to add.
        player.has_submitted = True


def select_letter(store: RoomStore, code: str, conn_id: str, letter: Any) -> Effects:
    fx = Effects()
    with store.lock:
        room = _room(store, code)
        require_host(room, conn_id)
        if not isinstance(letter, str) or letter.strip() not in ARABIC_LETTERS:
            raise ValidationError("invalid_letter", "That letter is not in the alphabet")
        letter = letter.strip()
        if room.round_state == "playing":
            raise PreconditionError("wrong_phase", "Wait for the current round to end")
        if room.game_active and letter in room.used_letters:
            raise ValidationError("letter_used", "That letter was already played")

        room.selected_letter = letter
        touch(room)
        fx.emit("letter-selected", {"letter": letter}, to=room.code)
        return fx


def finish_round(store: RoomStore, code: str, conn_id: str, answers: dict[str, Any] | None) -> Effects:
    fx = Effects()
    with store.lock:
        room = _room(store, code)
        player = require_player(room, conn_id)
        if not room.game_active or room.round_state != "playing":
            raise PreconditionError("wrong_phase", "The round is already over")

        player.answers = _clean_answers(room, answers)
        player.finished = True
        player.has_submitted = True
        room.round_state = "scoring"
        room.finisher = player.name
        touch(room)

        fx.emit("round-ended", {"finisher": player.name, "finisherId": player.id}, to=room.code)
        logger.info("round ended code=%s round=%s finisher=%s", room.code, room.current_round, player.name)
        return fx.extend(_check_completion(room))


def submit_answers(store: RoomStore, code: str, conn_id: str, answers: dict[str, Any] | None) -> Effects:
    with store.lock:
        room = _room(store, code)
        player = require_player(room, conn_id)
        if not room.game_active or room.round_state not in ("playing", "scoring") or room.scores_ready:
            raise PreconditionError("wrong_phase", "Answers are no longer accepted")

        player.answers = _clean_answers(room, answers)
        player.has_submitted = True
        touch(room)
        return _check_completion(room)


def recheck_completion(store: RoomStore, room: CategoryRoom) -> Effects:
    with store.lock:
        return _check_completion(room)


def _check_completion(room: CategoryRoom) -> Effects:
    fx = Effects()
    if not room.game_active or room.round_state not in ("playing", "scoring") or room.scores_ready:
        return fx

    active = active_players(room)
    if not active or not all(p.has_submitted for p in active):
        return fx

    _score_round(room)
    room.round_state = "scoring"
    room.scores_ready = True
    fx.emit("scoring-phase", scoring_payload(room), to=room.code)
    logger.info("scoring phase code=%s round=%s", room.code, room.current_round)
    return fx


def _score_round(room: CategoryRoom) -> None:
    active = active_players(room)
    scores = score_answers(
        {p.id: p.answers for p in active},
        room.categories,
        room.current_letter or "",
    )
    for p in room.players:
        p.scores = scores.get(p.id, {cat: 0 for cat in room.categories})
        p.round_score = sum(p.scores.values())


def update_single_score(
    store: RoomStore,
    code: str,
    conn_id: str,
    player_id: Any,
    category: Any,
    score: Any,
) -> Effects:
    fx = Effects()
    with store.lock:
        room = _room(store, code)
        require_host(room, conn_id)
        if not room.scores_ready:
            raise PreconditionError("wrong_phase", "Scores are not ready yet")
        if isinstance(score, bool) or score not in ALLOWED_OVERRIDE_SCORES:
            raise ValidationError("invalid_score", "Score must be 0, 5 or 10")
        if category not in room.categories:
            raise ValidationError("invalid_category", "Unknown category")
        target = find_player(room, player_id) if isinstance(player_id, str) else None
        if target is None:
            raise NotFoundError("player_not_found", "Player not found")

        target.scores[category] = score
        target.round_score = sum(target.scores.get(cat, 0) for cat in room.categories)
        touch(room)

        fx.emit(
            "score-updated",
            {
                "playerId": target.id,
                "category": category,
                "score": score,
                "roundScore": target.round_score,
            },
            to=room.code,
        )
        return fx


def update_scores_and_next(store: RoomStore, code: str, conn_id: str) -> Effects:
    with store.lock:
        room = _room(store, code)
        require_host(room, conn_id)
        if not room.scores_ready:
            raise PreconditionError("wrong_phase", "Scores are not ready yet")

        for p in room.players:
            p.total_score += p.round_score
        room.scores_ready = False
        touch(room)

        if room.current_round >= room.total_rounds:
            fx = Effects()
            room.game_active = False
            room.round_state = "idle"
            fx.emit("game-over", {"players": standings(room)}, to=room.code)
            logger.info("game over code=%s rounds=%s", room.code, room.total_rounds)
            return fx

        room.current_round += 1
        return _start_round(store, room)


def play_again(store: RoomStore, code: str, conn_id: str) -> Effects:
    fx = Effects()
    with store.lock:
        room = _room(store, code)
        require_host(room, conn_id)

        room.current_letter = None
        room.selected_letter = None
        room.used_letters = []
        room.current_round = 0
        room.round_state = "idle"
        room.scores_ready = False
        room.game_active = False
        room.round_start_time = None
        room.finisher = None
        for p in room.players:
            p.answers = {}
            p.scores = {}
            p.round_score = 0
            p.total_score = 0
            p.has_submitted = False
            p.finished = False
        touch(room)

        fx.emit("reset-game", {"players": players_payload(room), "usedLetters": []}, to=room.code)
        logger.info("game reset code=%s", room.code)
        return fx
