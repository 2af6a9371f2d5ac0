from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from threading import RLock

from ..errors import NotFoundError, PreconditionError, ValidationError
from .identity import generate_room_code, sanitize_name
from .models import GAME_TYPES, CategoryPlayer, CategoryRoom, GameType, Player, Room, SpyPlayer, SpyRoom
from .service import active_players, find_player, find_player_by_name, migrate_host, now_ms, room_summary, set_host
from .words import DEFAULT_CATEGORIES, DEFAULT_SPY_CATEGORIES


logger = logging.getLogger(__name__)


@dataclass
class RemovalResult:
    room: Room
    player: Player
    deleted: bool
    active_players: int
    new_host: Player | None = None


class RoomStore:
    """In-memory rooms for both games, keyed by code in one shared namespace."""

    def __init__(
        self,
        max_players: int = 20,
        max_name_length: int = 20,
        idle_timeout_sec: int = 1800,
        spy_min_players: int = 3,
        spy_guess_timeout_sec: int = 30,
        rng: random.Random | None = None,
    ) -> None:
        self.max_players = max_players
        self.max_name_length = max_name_length
        self.idle_timeout_sec = idle_timeout_sec
        self.spy_min_players = spy_min_players
        self.spy_guess_timeout_sec = spy_guess_timeout_sec
        self.rng = rng or random.Random()
        self.lock = RLock()
        self._rooms: dict[str, dict[str, Room]] = {t: {} for t in GAME_TYPES}

    def _taken(self) -> set[str]:
        return set(self._rooms["categories"]) | set(self._rooms["spy"])

    def create_room(self, game_type: GameType, host_id: str, host_name: str) -> Room:
        name = sanitize_name(host_name, self.max_name_length)
        with self.lock:
            code = generate_room_code(self._taken(), self.rng)
            if game_type == "spy":
                room: Room = SpyRoom(
                    code=code,
                    host_id=host_id,
                    categories=list(DEFAULT_SPY_CATEGORIES),
                    min_players=self.spy_min_players,
                    guess_timeout_sec=self.spy_guess_timeout_sec,
                )
                room.players.append(SpyPlayer(id=host_id, name=name, is_host=True))
            else:
                room = CategoryRoom(code=code, host_id=host_id, categories=list(DEFAULT_CATEGORIES))
                room.players.append(CategoryPlayer(id=host_id, name=name, is_host=True))
            room.last_activity = now_ms()
            self._rooms[room.game_type][code] = room
            logger.info("room created code=%s game=%s host=%s", code, game_type, name)
            return room

    def join_room(self, game_type: GameType, code: str, conn_id: str, name: str) -> tuple[Room, Player]:
        player_name = sanitize_name(name, self.max_name_length)
        with self.lock:
            room = self._rooms[game_type].get(code)
            if room is None:
                raise NotFoundError()
            if len(room.players) >= self.max_players:
                raise PreconditionError("room_full", "This room is full")
            if isinstance(room, SpyRoom) and room.game_active:
                raise PreconditionError("game_in_progress", "A game is already running in this room")
            if find_player_by_name(room, player_name) is not None:
                raise ValidationError("name_taken", "That name is already taken in this room")
            if find_player(room, conn_id) is not None:
                raise PreconditionError("already_joined", "You are already in this room")

            if isinstance(room, SpyRoom):
                player: Player = SpyPlayer(id=conn_id, name=player_name)
            else:
                player = CategoryPlayer(id=conn_id, name=player_name)
            room.players.append(player)
            room.last_activity = now_ms()
            return room, player

    def get_room(self, code: str, game_type: GameType | None = None) -> Room | None:
        with self.lock:
            if game_type is not None:
                return self._rooms[game_type].get(code)
            for rooms in self._rooms.values():
                if code in rooms:
                    return rooms[code]
            return None

    def delete_room(self, code: str) -> bool:
        with self.lock:
            for rooms in self._rooms.values():
                room = rooms.pop(code, None)
                if room is not None:
                    room.pending_timer = None
                    logger.info("room deleted code=%s game=%s", code, room.game_type)
                    return True
            return False

    def list_rooms(self, game_type: GameType | None = None) -> list[Room]:
        with self.lock:
            if game_type is not None:
                return list(self._rooms[game_type].values())
            return [r for rooms in self._rooms.values() for r in rooms.values()]

    def find_connection(self, conn_id: str) -> tuple[Room, Player] | None:
        with self.lock:
            for room in self.list_rooms():
                player = find_player(room, conn_id)
                if player is not None and not player.disconnected:
                    return room, player
            return None

    def remove_connection(self, conn_id: str) -> RemovalResult | None:
        """Mark the connection's player disconnected, migrating host or deleting the room."""
        with self.lock:
            found = self.find_connection(conn_id)
            if found is None:
                return None
            room, player = found
            player.disconnected = True
            room.last_activity = now_ms()

            remaining = len(active_players(room))
            if remaining == 0:
                self.delete_room(room.code)
                return RemovalResult(room=room, player=player, deleted=True, active_players=0)

            new_host = migrate_host(room)
            if new_host is not None:
                logger.info("host migrated code=%s from=%s to=%s", room.code, player.name, new_host.name)
            return RemovalResult(
                room=room,
                player=player,
                deleted=False,
                active_players=remaining,
                new_host=new_host,
            )

    def rebind_player(self, room: Room, name: str, conn_id: str) -> Player | None:
        """Attach a disconnected player slot to a new connection id.

        Every reference to the old id inside the room moves with it.
        """
        with self.lock:
            player = find_player_by_name(room, name)
            if player is None or not player.disconnected:
                return None

            old_id = player.id
            player.id = conn_id
            player.disconnected = False

            if room.host_id == old_id:
                set_host(room, player)
            if isinstance(room, SpyRoom):
                room.spy_ids = [conn_id if sid == old_id else sid for sid in room.spy_ids]
                for p in room.players:
                    if p.voted_for == old_id:
                        p.voted_for = conn_id

            room.last_activity = now_ms()
            return player

    def drop_player(self, code: str, game_type: GameType, name: str) -> Room | None:
        """Remove a disconnected player's slot for good; returns the room it left."""
        with self.lock:
            room = self._rooms[game_type].get(code)
            if room is None:
                return None
            player = find_player_by_name(room, name)
            if player is None or not player.disconnected:
                return None
            room.players.remove(player)
            logger.info("player slot released code=%s name=%s", code, name)
            return room

    def sweep(self, now: int | None = None) -> list[str]:
        """Delete rooms with nobody connected or idle past the timeout."""
        now = now_ms() if now is None else now
        cutoff = now - self.idle_timeout_sec * 1000
        with self.lock:
            doomed = [
                room.code
                for room in self.list_rooms()
                if not active_players(room) or room.last_activity < cutoff
            ]
            for code in doomed:
                self.delete_room(code)
            return doomed

    def stats(self) -> dict:
        with self.lock:
            categories = [room_summary(r) for r in self._rooms["categories"].values()]
            spy = [room_summary(r) for r in self._rooms["spy"].values()]
        return {
            "totalCategoryRooms": len(categories),
            "totalSpyRooms": len(spy),
            "categoryRooms": categories,
            "spyRooms": spy,
        }
