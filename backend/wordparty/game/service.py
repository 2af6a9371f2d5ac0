from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field

from ..errors import AuthorizationError, NotFoundError
from .models import CategoryRoom, Player, Room, SpyRoom


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Outbound:
    """One message for the transport: ``to`` is a room code or a connection id."""

    event: str
    payload: dict
    to: str


@dataclass
class TimerRequest:
    room_code: str
    kind: str
    token: int
    delay_sec: float


@dataclass
class Effects:
    messages: list[Outbound] = field(default_factory=list)
    timers: list[TimerRequest] = field(default_factory=list)
    # (connection id, room code) pairs to subscribe before messages go out
    joins: list[tuple[str, str]] = field(default_factory=list)

    def enter(self, conn_id: str, room_code: str) -> None:
        self.joins.append((conn_id, room_code))

    def emit(self, event: str, payload: dict, to: str) -> None:
        self.messages.append(Outbound(event=event, payload=payload, to=to))

    def arm(self, room_code: str, kind: str, token: int, delay_sec: float) -> None:
        self.timers.append(TimerRequest(room_code=room_code, kind=kind, token=token, delay_sec=delay_sec))

    def extend(self, other: "Effects") -> "Effects":
        self.joins.extend(other.joins)
        self.messages.extend(other.messages)
        self.timers.extend(other.timers)
        return self

    def events(self, name: str) -> list[Outbound]:
        return [m for m in self.messages if m.event == name]


def event_name(room: Room, name: str) -> str:
    """Spy rooms speak the ``spy-`` prefixed variant of the shared events."""
    if isinstance(room, SpyRoom):
        return f"spy-{name}"
    return name


def touch(room: Room) -> None:
    room.last_activity = now_ms()


def active_players(room: Room) -> list[Player]:
    return [p for p in room.players if not p.disconnected]


def find_player(room: Room, player_id: str) -> Player | None:
    for p in room.players:
        if p.id == player_id:
            return p
    return None


def find_player_by_name(room: Room, name: str) -> Player | None:
    for p in room.players:
        if p.name == name:
            return p
    return None


def require_player(room: Room, conn_id: str) -> Player:
    player = find_player(room, conn_id)
    if player is None:
        raise NotFoundError("player_not_found", "You are not in this room")
    return player


def require_host(room: Room, conn_id: str) -> Player:
    player = require_player(room, conn_id)
    if room.host_id != conn_id:
        raise AuthorizationError()
    return player


def set_host(room: Room, player: Player) -> None:
    for p in room.players:
        p.is_host = p is player
    room.host_id = player.id


def migrate_host(room: Room) -> Player | None:
    """Hand the host role to the earliest-joined active player if needed.

    Returns the new host when the role moved, else None.
    """
    current = find_player(room, room.host_id)
    if current is not None and not current.disconnected:
        return None

    for p in room.players:
        if not p.disconnected:
            set_host(room, p)
            return p
    return None


def player_public(player: Player) -> dict:
    d = asdict(player)
    payload = {
        "id": d["id"],
        "name": d["name"],
        "isHost": d["is_host"],
        "disconnected": d["disconnected"],
        "roundScore": d["round_score"],
        "totalScore": d["total_score"],
    }
    if "has_submitted" in d:
        payload["hasSubmitted"] = d["has_submitted"]
        payload["finished"] = d["finished"]
    else:
        # Never expose spy roles or vote targets in a roster.
        payload["confirmed"] = d["confirmed"]
        payload["voted"] = d["voted"]
    return payload


def players_payload(room: Room) -> list[dict]:
    return [player_public(p) for p in room.players]


def standings(room: Room) -> list[dict]:
    ranked = sorted(room.players, key=lambda p: p.total_score, reverse=True)
    return [{"id": p.id, "name": p.name, "totalScore": p.total_score} for p in ranked]


def room_summary(room: Room) -> dict:
    summary = {
        "code": room.code,
        "gameType": room.game_type,
        "players": len(room.players),
        "activePlayers": len(active_players(room)),
        "gameActive": room.game_active,
        "roundState": room.round_state,
        "round": room.current_round,
        "totalRounds": room.total_rounds,
        "categories": list(room.categories),
        "lastActivity": room.last_activity,
    }
    if isinstance(room, CategoryRoom):
        summary["usedLetters"] = list(room.used_letters)
    return summary
