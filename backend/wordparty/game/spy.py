"""Spy (impostor) round engine.

Phases: role-reveal -> discussion -> voting -> (guessing ->) result.
Discussion and guessing are closed by server timers; every timer carries the
token it was armed with and is ignored once the room has moved on.
"""

from __future__ import annotations

import logging
from typing import Any

from ..errors import AuthorizationError, NotFoundError, PreconditionError, ValidationError
from .models import PhaseTimer, SpyPlayer, SpyRoom, TimerKind
from .service import Effects, active_players, find_player, now_ms, require_host, require_player, standings, touch
from .store import RoomStore
from .words import SPY_WORD_DATABASE, category_label, guess_options, pick_spy_word


logger = logging.getLogger(__name__)

MIN_ROUNDS = 1
MAX_ROUNDS = 20
DEFAULT_ROUNDS = 5
MIN_TIMER_SEC = 30
MAX_TIMER_SEC = 600
DEFAULT_TIMER_SEC = 120
GUESS_DECOYS = 5

# (spy, civilian) points per outcome
SCORE_TABLE: dict[str, tuple[int, int]] = {
    "caught_guessed": (2, 1),
    "caught_missed": (-2, 3),
    "not_caught": (4, -1),
}


def outcome_key(spy_caught: bool, guessed_correctly: bool) -> str:
    if not spy_caught:
        return "not_caught"
    return "caught_guessed" if guessed_correctly else "caught_missed"


def round_score(is_spy: bool, spy_caught: bool, guessed_correctly: bool) -> int:
    spy_points, civilian_points = SCORE_TABLE[outcome_key(spy_caught, guessed_correctly)]
    return spy_points if is_spy else civilian_points


def tally_votes(players: list[SpyPlayer]) -> tuple[str | None, dict[str, int]]:
    """Count votes in player order; the first candidate to reach the top count wins ties."""
    counts: dict[str, int] = {}
    for p in players:
        if p.voted and p.voted_for:
            counts[p.voted_for] = counts.get(p.voted_for, 0) + 1

    most_voted = None
    max_votes = 0
    for pid, count in counts.items():
        if count > max_votes:
            max_votes = count
            most_voted = pid
    return most_voted, counts


def _room(store: RoomStore, code: str) -> SpyRoom:
    room = store.get_room(code, "spy")
    if room is None:
        raise NotFoundError()
    return room  # type: ignore[return-value]


def _int_setting(raw: Any, low: int, high: int, default: int, code: str, label: str) -> int:
    if raw is None:
        return default
    if not isinstance(raw, int) or isinstance(raw, bool) or not low <= raw <= high:
        raise ValidationError(code, f"{label} must be between {low} and {high}")
    return raw


def _validate_categories(raw: Any, current: list[str]) -> list[str]:
    if raw is None:
        return list(current)
    if not isinstance(raw, list):
        raise ValidationError("invalid_categories", "Categories must be a list")
    cats: list[str] = []
    for item in raw:
        if isinstance(item, str) and item in SPY_WORD_DATABASE and item not in cats:
            cats.append(item)
    if not cats:
        raise ValidationError("invalid_categories", "Pick at least one category")
    return cats


def _counts(room: SpyRoom, flag: str) -> tuple[int, int]:
    active = active_players(room)
    return sum(1 for p in active if getattr(p, flag)), len(active)


def _spy_names(room: SpyRoom) -> list[str]:
    return [p.name for p in room.players if p.id in room.spy_ids]


def _arm(room: SpyRoom, fx: Effects, kind: TimerKind, delay_sec: float) -> PhaseTimer:
    room.timer_seq += 1
    timer = PhaseTimer(
        kind=kind,
        token=room.timer_seq,
        state=room.round_state or "",
        deadline_ms=now_ms() + int(delay_sec * 1000),
    )
    room.pending_timer = timer
    fx.arm(room.code, kind, timer.token, delay_sec)
    return timer


def role_payload(room: SpyRoom, player: SpyPlayer) -> dict:
    return {
        "round": room.current_round,
        "totalRounds": room.total_rounds,
        "isSpy": player.is_spy,
        "word": None if player.is_spy else room.current_word,
        "category": room.current_category,
        "categoryLabel": category_label(room.current_category or ""),
        "timerDuration": room.timer_duration,
    }


def voting_roster(room: SpyRoom) -> list[dict]:
    return [{"id": p.id, "name": p.name, "disconnected": p.disconnected} for p in room.players]


def guess_payload(room: SpyRoom, player: SpyPlayer) -> dict:
    is_spy = player.id in room.spy_ids
    return {
        "iAmSpy": is_spy,
        "category": room.current_category,
        "categoryLabel": category_label(room.current_category or ""),
        "options": list(room.guess_options) if is_spy else [],
        "spyNames": _spy_names(room),
        "timeout": room.guess_timeout_sec,
        "startTime": room.guess_start_time,
    }


def start_game(
    store: RoomStore,
    code: str,
    conn_id: str,
    total_rounds: int | None = None,
    timer_duration: int | None = None,
    spy_count: int | None = None,
    categories: list[str] | None = None,
) -> Effects:
    with store.lock:
        room = _room(store, code)
        require_host(room, conn_id)
        if room.game_active:
            raise PreconditionError("game_in_progress", "A game is already running")
        active = active_players(room)
        if len(active) < room.min_players:
            raise PreconditionError("not_enough_players", f"At least {room.min_players} players are needed")

        rounds = _int_setting(total_rounds, MIN_ROUNDS, MAX_ROUNDS, DEFAULT_ROUNDS, "invalid_rounds", "Rounds")
        timer = _int_setting(
            timer_duration, MIN_TIMER_SEC, MAX_TIMER_SEC, DEFAULT_TIMER_SEC, "invalid_timer", "Timer"
        )
        spies = _spy_count(spy_count)
        cats = _validate_categories(categories, room.categories)

        room.total_rounds = rounds
        room.timer_duration = timer
        room.spy_count = min(spies, len(active) - 1)
        room.categories = cats
        room.current_round = 0
        room.used_words = []
        room.game_active = True
        for p in room.players:
            p.total_score = 0

        return _start_round(store, room)


def _spy_count(raw: Any) -> int:
    if raw is None:
        return 1
    if not isinstance(raw, int) or isinstance(raw, bool) or raw < 1:
        raise ValidationError("invalid_spy_count", "There must be at least one spy")
    return raw


def _start_round(store: RoomStore, room: SpyRoom) -> Effects:
    fx = Effects()
    room.current_round += 1

    category, word, used = pick_spy_word(room.categories, room.used_words, store.rng)
    room.current_category = category
    room.current_word = word
    room.used_words = used

    active = active_players(room)
    count = max(1, min(room.spy_count, len(active) - 1))
    chosen = set(store.rng.sample([p.id for p in active], count))
    room.spy_ids = [p.id for p in room.players if p.id in chosen]

    for p in room.players:
        p.is_spy = p.id in chosen
        p.confirmed = False
        p.voted = False
        p.voted_for = None
        p.round_score = 0

    room.round_state = "role-reveal"
    room.pending_timer = None
    room.discussion_start_time = None
    room.guess_start_time = None
    room.guess_options = []
    room.vote_counts = {}
    room.most_voted_id = None
    room.last_result = None
    touch(room)

    for p in active:
        fx.emit("spy-round-started", role_payload(room, p), to=p.id)

    logger.info(
        "spy round started code=%s round=%s/%s category=%s spies=%s",
        room.code,
        room.current_round,
        room.total_rounds,
        category,
        len(room.spy_ids),
    )
    logger.debug("spy round word code=%s word=%s", room.code, word)
    return fx


def confirm_role(store: RoomStore, code: str, conn_id: str) -> Effects:
    fx = Effects()
    with store.lock:
        room = _room(store, code)
        player = require_player(room, conn_id)
        if room.round_state != "role-reveal":
            raise PreconditionError("wrong_phase", "Roles are no longer being confirmed")

        player.confirmed = True
        touch(room)
        confirmed, total = _counts(room, "confirmed")
        fx.emit("spy-confirm-update", {"confirmed": confirmed, "total": total}, to=room.code)
        return fx.extend(_check_confirmations(room))


def _check_confirmations(room: SpyRoom) -> Effects:
    fx = Effects()
    if room.round_state != "role-reveal":
        return fx
    active = active_players(room)
    if not active or not all(p.confirmed for p in active):
        return fx

    room.round_state = "discussion"
    room.discussion_start_time = now_ms()
    timer = _arm(room, fx, "discussion", room.timer_duration)
    fx.emit(
        "spy-start-discussion",
        {
            "timerDuration": room.timer_duration,
            "startTime": room.discussion_start_time,
            "endsAt": timer.deadline_ms,
        },
        to=room.code,
    )
    logger.info("[timer-set] code=%s kind=discussion token=%s duration=%ss", room.code, timer.token, room.timer_duration)
    return fx


def fire_timer(store: RoomStore, code: str, kind: str, token: int) -> Effects:
    """Timer callback; a no-op unless the room is still in the phase it was armed for."""
    with store.lock:
        room = store.get_room(code, "spy")
        if room is None:
            logger.info("[timer-skip] code=%s kind=%s token=%s room gone", code, kind, token)
            return Effects()

        timer = room.pending_timer
        if timer is None or timer.token != token or timer.kind != kind or room.round_state != timer.state:
            logger.info(
                "[timer-skip] code=%s kind=%s token=%s state=%s stale",
                code,
                kind,
                token,
                room.round_state,
            )
            return Effects()

        logger.info("[timer-fire] code=%s kind=%s token=%s", code, kind, token)
        room.pending_timer = None
        if kind == "discussion":
            return _start_voting(room)
        return _resolve_guess(room, None)


def _start_voting(room: SpyRoom) -> Effects:
    fx = Effects()
    room.round_state = "voting"
    touch(room)
    fx.emit("spy-start-voting", {"players": voting_roster(room)}, to=room.code)
    return fx


def submit_vote(store: RoomStore, code: str, conn_id: str, voted_for: Any) -> Effects:
    fx = Effects()
    with store.lock:
        room = _room(store, code)
        player = require_player(room, conn_id)
        if room.round_state != "voting":
            raise PreconditionError("wrong_phase", "Voting is not open")
        if player.voted:
            raise PreconditionError("already_voted", "You already voted")
        if not isinstance(voted_for, str) or voted_for == player.id:
            raise ValidationError("invalid_vote", "You cannot vote for yourself")
        target = find_player(room, voted_for)
        if target is None:
            raise ValidationError("invalid_vote", "That player is not in this room")
        if target.disconnected:
            raise ValidationError("invalid_vote", "That player has left")

        player.voted = True
        player.voted_for = target.id
        touch(room)

        voted, total = _counts(room, "voted")
        fx.emit("spy-vote-update", {"voted": voted, "total": total}, to=room.code)
        return fx.extend(_check_votes(room, store))


def _check_votes(room: SpyRoom, store: RoomStore) -> Effects:
    if room.round_state != "voting":
        return Effects()
    active = active_players(room)
    if not active or not all(p.voted for p in active):
        return Effects()
    return _tally(room, store)


def _tally(room: SpyRoom, store: RoomStore) -> Effects:
    fx = Effects()
    most_voted, counts = tally_votes(room.players)
    room.vote_counts = counts
    room.most_voted_id = most_voted

    if most_voted is None or most_voted not in room.spy_ids:
        return _finish_round(room, spy_caught=False, guessed_correctly=False, guess=None)

    room.round_state = "guessing"
    if not any(p.id in room.spy_ids for p in active_players(room)):
        return _resolve_guess(room, None)

    room.guess_options = guess_options(
        room.current_category or "", room.current_word or "", GUESS_DECOYS, store.rng
    )
    room.guess_start_time = now_ms()
    timer = _arm(room, fx, "guess", room.guess_timeout_sec)

    for p in active_players(room):
        fx.emit("spy-guess-phase", guess_payload(room, p), to=p.id)

    logger.info("[timer-set] code=%s kind=guess token=%s duration=%ss", room.code, timer.token, room.guess_timeout_sec)
    return fx


def submit_guess(store: RoomStore, code: str, conn_id: str, guess: Any) -> Effects:
    with store.lock:
        room = _room(store, code)
        player = require_player(room, conn_id)
        if player.id not in room.spy_ids:
            raise AuthorizationError("not_spy", "Only the spy can guess the word")
        if room.round_state == "result":
            # Another spy already answered for this round.
            return Effects()
        if room.round_state != "guessing":
            raise PreconditionError("wrong_phase", "Guessing is not open")
        if not isinstance(guess, str) or not guess.strip():
            raise ValidationError("invalid_guess", "Pick a word")

        return _resolve_guess(room, guess.strip())


def _resolve_guess(room: SpyRoom, guess: str | None) -> Effects:
    correct = guess is not None and guess == room.current_word
    return _finish_round(room, spy_caught=True, guessed_correctly=correct, guess=guess)


def _finish_round(room: SpyRoom, spy_caught: bool, guessed_correctly: bool, guess: str | None) -> Effects:
    fx = Effects()
    room.pending_timer = None
    for p in room.players:
        p.round_score = round_score(p.id in room.spy_ids, spy_caught, guessed_correctly)
        p.total_score += p.round_score

    room.round_state = "result"
    touch(room)
    result = {
        "spyCaught": spy_caught,
        "spyGuessedCorrectly": guessed_correctly,
        "guess": guess,
        "word": room.current_word,
        "category": room.current_category,
        "categoryLabel": category_label(room.current_category or ""),
        "spyNames": _spy_names(room),
        "spyIds": list(room.spy_ids),
        "mostVotedId": room.most_voted_id,
        "voteCounts": dict(room.vote_counts),
        "round": room.current_round,
        "totalRounds": room.total_rounds,
        "players": [
            {
                "id": p.id,
                "name": p.name,
                "roundScore": p.round_score,
                "totalScore": p.total_score,
                "isSpy": p.id in room.spy_ids,
            }
            for p in room.players
        ],
    }
    room.last_result = result
    fx.emit("spy-round-result", result, to=room.code)
    logger.info(
        "spy round result code=%s round=%s outcome=%s",
        room.code,
        room.current_round,
        outcome_key(spy_caught, guessed_correctly),
    )
    return fx


def next_round(store: RoomStore, code: str, conn_id: str) -> Effects:
    with store.lock:
        room = _room(store, code)
        require_host(room, conn_id)
        if room.round_state != "result":
            raise PreconditionError("wrong_phase", "Finish this round first")

        if room.current_round >= room.total_rounds:
            return _game_over(room, "completed")
        if len(active_players(room)) < room.min_players:
            return _game_over(room, "not_enough_players")
        return _start_round(store, room)


def _game_over(room: SpyRoom, reason: str) -> Effects:
    fx = Effects()
    room.game_active = False
    room.round_state = None
    room.pending_timer = None
    touch(room)
    fx.emit("spy-game-over", {"players": standings(room), "reason": reason}, to=room.code)
    logger.info("spy game over code=%s round=%s/%s reason=%s", room.code, room.current_round, room.total_rounds, reason)
    return fx


def recheck_after_disconnect(store: RoomStore, room: SpyRoom) -> Effects:
    """Re-run the barrier of the current phase with the remaining players."""
    fx = Effects()
    with store.lock:
        if room.round_state == "role-reveal":
            confirmed, total = _counts(room, "confirmed")
            fx.emit("spy-confirm-update", {"confirmed": confirmed, "total": total}, to=room.code)
            fx.extend(_check_confirmations(room))
        elif room.round_state == "voting":
            voted, total = _counts(room, "voted")
            fx.emit("spy-vote-update", {"voted": voted, "total": total}, to=room.code)
            fx.extend(_check_votes(room, store))
        elif room.round_state == "guessing":
            if not any(p.id in room.spy_ids for p in active_players(room)):
                logger.info("all spies left during guess code=%s", room.code)
                fx.extend(_resolve_guess(room, None))
        return fx
