"""Inbound Socket.IO payloads.

Every client event is parsed into a small dataclass before any engine sees it,
so handlers only deal with well-typed values. Malformed payloads raise
:class:`ValidationError` and never reach room state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..errors import ValidationError
from ..game.identity import sanitize_room_code


@dataclass(frozen=True)
class CreateRoom:
    name: Any


@dataclass(frozen=True)
class JoinRoom:
    room_code: str
    name: Any


@dataclass(frozen=True)
class RoomAction:
    room_code: str


@dataclass(frozen=True)
class StartCategoriesGame:
    room_code: str
    total_rounds: int | None
    categories: list[str] | None


@dataclass(frozen=True)
class StartSpyGame:
    room_code: str
    total_rounds: int | None
    timer_duration: int | None
    spy_count: int | None
    categories: list[str] | None


@dataclass(frozen=True)
class SelectLetter:
    room_code: str
    letter: str


@dataclass(frozen=True)
class Answers:
    room_code: str
    answers: dict[str, Any]


@dataclass(frozen=True)
class UpdateSingleScore:
    room_code: str
    player_id: str
    category: str
    score: int


@dataclass(frozen=True)
class SubmitVote:
    room_code: str
    voted_for: str


@dataclass(frozen=True)
class SubmitGuess:
    room_code: str
    guess: str


@dataclass(frozen=True)
class AttemptReconnect:
    name: Any
    room_code: Any
    game_type: Any
    client_time: float | None


def _dict(data: Any) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError()
    return data


def _first(payload: dict, *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _room_code(payload: dict) -> str:
    return sanitize_room_code(_first(payload, "roomCode", "code"))


def _opt_int(raw: Any, code: str) -> int | None:
    """Accept ints and digit strings (form fields arrive as text)."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise ValidationError(code, "Expected a number")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        return int(raw.strip())
    raise ValidationError(code, "Expected a number")


def _opt_list(raw: Any) -> list[str] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValidationError("invalid_categories", "Categories must be a list")
    return raw


def _text(raw: Any, code: str, message: str) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError(code, message)
    return raw


def parse_create_room(data: Any) -> CreateRoom:
    if isinstance(data, str):
        return CreateRoom(name=data)
    payload = _dict(data)
    return CreateRoom(name=_first(payload, "playerName", "name"))


def parse_join_room(data: Any) -> JoinRoom:
    payload = _dict(data)
    return JoinRoom(room_code=_room_code(payload), name=_first(payload, "playerName", "name"))


def parse_room_action(data: Any) -> RoomAction:
    if isinstance(data, str):
        return RoomAction(room_code=sanitize_room_code(data))
    return RoomAction(room_code=_room_code(_dict(data)))


def parse_start_game(data: Any) -> StartCategoriesGame:
    payload = _dict(data)
    return StartCategoriesGame(
        room_code=_room_code(payload),
        total_rounds=_opt_int(payload.get("totalRounds"), "invalid_rounds"),
        categories=_opt_list(payload.get("categories")),
    )


def parse_spy_start_game(data: Any) -> StartSpyGame:
    payload = _dict(data)
    return StartSpyGame(
        room_code=_room_code(payload),
        total_rounds=_opt_int(payload.get("totalRounds"), "invalid_rounds"),
        timer_duration=_opt_int(payload.get("timerDuration"), "invalid_timer"),
        spy_count=_opt_int(payload.get("spyCount"), "invalid_spy_count"),
        categories=_opt_list(payload.get("categories")),
    )


def parse_select_letter(data: Any) -> SelectLetter:
    payload = _dict(data)
    letter = _text(payload.get("letter"), "invalid_letter", "Pick a letter")
    return SelectLetter(room_code=_room_code(payload), letter=letter)


def parse_answers(data: Any) -> Answers:
    payload = _dict(data)
    answers = payload.get("answers")
    if answers is None:
        answers = {}
    if not isinstance(answers, dict):
        raise ValidationError("invalid_answers", "Answers must be an object")
    return Answers(room_code=_room_code(payload), answers=answers)


def parse_update_single_score(data: Any) -> UpdateSingleScore:
    payload = _dict(data)
    score = _opt_int(payload.get("score"), "invalid_score")
    if score is None:
        raise ValidationError("invalid_score", "Score must be 0, 5 or 10")
    return UpdateSingleScore(
        room_code=_room_code(payload),
        player_id=_text(payload.get("playerId"), "player_not_found", "Player not found"),
        category=_text(payload.get("category"), "invalid_category", "Unknown category"),
        score=score,
    )


def parse_submit_vote(data: Any) -> SubmitVote:
    payload = _dict(data)
    voted_for = _text(payload.get("votedFor"), "invalid_vote", "Pick a player")
    return SubmitVote(room_code=_room_code(payload), voted_for=voted_for)


def parse_submit_guess(data: Any) -> SubmitGuess:
    payload = _dict(data)
    guess = _text(payload.get("guess"), "invalid_guess", "Pick a word")
    return SubmitGuess(room_code=_room_code(payload), guess=guess)


def parse_attempt_reconnect(data: Any) -> AttemptReconnect:
    payload = _dict(data)
    client_time = payload.get("clientTime")
    if isinstance(client_time, bool) or not isinstance(client_time, (int, float)):
        client_time = None
    return AttemptReconnect(
        name=_first(payload, "name", "playerName"),
        room_code=_first(payload, "roomCode", "code"),
        game_type=payload.get("gameType"),
        client_time=client_time,
    )


PARSERS: dict[str, Callable[[Any], Any]] = {
    "create-room": parse_create_room,
    "join-room": parse_join_room,
    "start-game": parse_start_game,
    "select-letter": parse_select_letter,
    "finish-round": parse_answers,
    "submit-answers": parse_answers,
    "update-single-score": parse_update_single_score,
    "update-scores-and-next": parse_room_action,
    "play-again": parse_room_action,
    "spy-create-room": parse_create_room,
    "spy-join-room": parse_join_room,
    "spy-start-game": parse_spy_start_game,
    "spy-confirm-role": parse_room_action,
    "spy-submit-vote": parse_submit_vote,
    "spy-submit-guess": parse_submit_guess,
    "spy-next-round": parse_room_action,
    "attempt-reconnect": parse_attempt_reconnect,
}


def parse(event: str, data: Any) -> Any:
    parser = PARSERS.get(event)
    if parser is None:
        raise ValidationError("unknown_event", f"Unknown event {event}")
    return parser(data)
