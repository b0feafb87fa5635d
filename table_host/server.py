from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

import websockets
from websockets.asyncio.server import ServerConnection, serve

from betting import dealing, engine
from betting.errors import EngineError
from betting.models import ActionRequest, ActionType, ApplyOutcome, GameState, Phase, Player, TableConfig

LOGGER = logging.getLogger("poker_host")

# HostServer is the calling layer around the betting engine: it owns the seat
# roster and the live GameState, and it serializes every engine call for the
# hand under one lock. The engine itself never sees a socket.


@dataclass
class ClientSession:
    seat: int
    team: str
    websocket: ServerConnection


@dataclass
class PendingAction:
    seat: int
    deadline: float
    timer_task: Optional[asyncio.Task] = None


class HostServer:
    def __init__(self, config: TableConfig) -> None:
        self.config = config
        self.table_id = "T-1"
        self.roster: Dict[int, Player] = {}
        self.sessions: Dict[int, ClientSession] = {}
        self.state: Optional[GameState] = None
        self.pending_action: Optional[PendingAction] = None
        self.hand_counter = 0
        self.lock = asyncio.Lock()

    async def start(self, host: str = "0.0.0.0", port: int = 8765) -> None:
        async with serve(self._handle_connection, host, port):
            LOGGER.info("Host server listening on %s:%s", host, port)
            await asyncio.Future()

    # Seat management -------------------------------------------------

    def assign_seat(self, team: str) -> Player:
        team_display = team.strip()
        if not team_display:
            raise ValueError("TEAM_REQUIRED")

        team_key = team_display.casefold()
        for player in self.roster.values():
            if player.name.casefold() == team_key:
                return player

        for seat in range(1, self.config.seats + 1):
            if seat not in self.roster:
                player = Player(seat=seat, stack=self.config.starting_stack, name=team_display)
                self.roster[seat] = player
                return player

        raise RuntimeError("Table is full")

    def players_with_chips(self) -> List[Player]:
        return [player for player in self.roster.values() if player.stack > 0]

    def lobby_state(self) -> Dict[str, object]:
        return {
            "players": [
                {
                    "seat": player.seat,
                    "team": player.name,
                    "connected": player.seat in self.sessions,
                    "stack": player.stack,
                }
                for player in sorted(self.roster.values(), key=lambda p: p.seat)
            ]
        }

    # Connection handling ---------------------------------------------

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        hello = await self._read_message(websocket)
        if hello is None or hello.get("type") != "hello":
            await self._send_error(websocket, code="BAD_HELLO", msg="Expected hello")
            await websocket.close()
            return
        team_raw = hello.get("team")
        if not isinstance(team_raw, str) or not team_raw.strip():
            await self._send_error(websocket, code="BAD_SCHEMA", msg="team required")
            await websocket.close()
            return

        try:
            async with self.lock:
                player = self.assign_seat(team_raw)
        except RuntimeError:
            await self._send_error(websocket, code="TABLE_FULL", msg="No seats available")
            await websocket.close()
            return

        previous = self.sessions.get(player.seat)
        if previous:
            await previous.websocket.close(code=4000, reason="Replaced by new connection")
        session = ClientSession(seat=player.seat, team=player.name, websocket=websocket)
        self.sessions[player.seat] = session
        LOGGER.info("Seat %s claimed by %s (stack=%s)", player.seat, player.name, player.stack)

        await self._send_json(websocket, "welcome", {
            "table_id": self.table_id,
            "seat": player.seat,
            "config": {
                "seats": self.config.seats,
                "starting_stack": self.config.starting_stack,
                "sb": self.config.sb,
                "bb": self.config.bb,
                "move_time_ms": self.config.move_time_ms,
            },
        })
        await self._broadcast("lobby", self.lobby_state())

        async with self.lock:
            snapshot = engine.snapshot_payload(self.state, player.seat) if self.state else None
        if snapshot:
            await self._send_json(websocket, "snapshot", snapshot)
        else:
            await self._maybe_start_hand()

        try:
            async for raw in websocket:
                message = self._decode(raw)
                if message.get("type") == "action":
                    await self._handle_action(session, message)
                else:
                    await self._send_error(websocket, code="UNKNOWN_TYPE", msg="Unsupported message type")
        except websockets.ConnectionClosed:
            pass
        finally:
            if self.sessions.get(player.seat) is session:
                self.sessions.pop(player.seat, None)
        LOGGER.info("Seat %s (%s) disconnected", player.seat, player.name)
        await self._broadcast("lobby", self.lobby_state())

    # Hand lifecycle --------------------------------------------------
    # Everything that follows an engine call (broadcasts, the next prompt,
    # settlement) runs while the lock is held, so clients see one hand's
    # messages in the order the engine produced them.

    async def _maybe_start_hand(self) -> None:
        async with self.lock:
            await self._start_hand_locked()

    async def _start_hand_locked(self) -> None:
        if self.state is not None or len(self.players_with_chips()) < 2:
            return
        hand_id = f"H-{time.strftime('%Y%m%d')}-{self.hand_counter:05d}"
        self.hand_counter += 1
        self.state = dealing.start_hand(self.roster.values(), self.config, hand_id=hand_id)
        start_payload = {
            "hand_id": hand_id,
            "small_blind": self.state.small_blind,
            "big_blind": self.state.big_blind,
            "stacks": [
                {"seat": player.seat, "stack": player.stack + player.total_bet}
                for player in self.state.players
            ],
        }

        LOGGER.info("Starting hand %s", hand_id)
        await self._broadcast("start_hand", start_payload)
        for seat, session in list(self.sessions.items()):
            await self._send_json(session.websocket, "snapshot", engine.snapshot_payload(self.state, seat))
        await self._prompt_next_actor_locked()

    async def _prompt_next_actor_locked(self) -> None:
        if self.state is None or self.state.current_player_seat is None:
            return
        next_seat = self.state.current_player_seat

        session = self.sessions.get(next_seat)
        if session:
            await self._send_json(session.websocket, "act", engine.snapshot_payload(self.state, next_seat))
        else:
            LOGGER.info("Seat %s is disconnected; waiting for reconnection or timeout", next_seat)
        self._schedule_timer(next_seat)

    async def _handle_action(self, session: ClientSession, message: Dict[str, object]) -> None:
        hand_id = message.get("hand_id")
        action_name = message.get("action")
        amount = message.get("amount")

        async with self.lock:
            if self.state is None or hand_id != self.state.hand_id:
                await self._send_error(session.websocket, code="ACTION_TOO_LATE", msg="Hand no longer active")
                return

            try:
                action = ActionType(action_name)
            except ValueError:
                await self._send_error(session.websocket, code="INVALID_ACTION", msg="Unknown action")
                return

            if action == ActionType.RAISE and (not isinstance(amount, int) or isinstance(amount, bool)):
                await self._send_error(session.websocket, code="BAD_SCHEMA", msg="amount required for raise")
                return

            request = ActionRequest(
                seat=session.seat,
                action=action,
                amount=amount if action == ActionType.RAISE else None,
            )
            try:
                self.state, outcome = engine.apply_request(self.state, request)
            except EngineError as exc:
                LOGGER.warning(
                    "Rejected action seat=%s action=%s amount=%s reason=%s",
                    session.seat,
                    action.value,
                    amount,
                    exc,
                )
                await self._send_error(session.websocket, code=exc.code, msg=exc.msg)
                return

            LOGGER.debug(
                "Applied action hand=%s seat=%s action=%s amount=%s",
                hand_id,
                session.seat,
                action.value,
                amount,
            )
            self._cancel_pending_action()
            event = self._action_event(request, outcome)
            await self._after_action_locked(event, outcome)

    async def _after_action_locked(self, event: Dict[str, object], outcome: ApplyOutcome) -> None:
        await self._broadcast_events([event])
        if outcome.hand_ended:
            await self._finish_hand_locked(outcome)
            return
        if outcome.phase_advanced:
            assert self.state is not None
            await self._broadcast("phase", {
                "hand_id": self.state.hand_id,
                "phase": self.state.phase.value,
                "community": [card.label for card in dealing.visible_community_cards(self.state)],
                "pot": self.state.pot,
            })
        await self._prompt_next_actor_locked()

    async def _finish_hand_locked(self, outcome: ApplyOutcome) -> None:
        state = self.state
        if state is None:
            return
        if outcome.winner_seat is not None:
            winners = [outcome.winner_seat]
        else:
            # No hand ranking at this table: showdown contenders chop the pot.
            winners = list(outcome.showdown_seats)
        revealed = []
        if state.phase == Phase.SHOWDOWN:
            revealed = [
                {"seat": player.seat, "hand": [card.label for card in player.hand]}
                for player in engine.contenders(state)
            ]
        settled = dealing.award_pot(state, winners)
        for player in settled.players:
            self.roster[player.seat].stack = player.stack
        self.state = None
        self._cancel_pending_action()
        end_payload = {
            "hand_id": state.hand_id,
            "pot": state.pot,
            "winners": winners,
            "showdown": revealed,
            "community": [card.label for card in dealing.visible_community_cards(state)],
            "stacks": [
                {"seat": player.seat, "stack": player.stack}
                for player in sorted(self.roster.values(), key=lambda p: p.seat)
            ],
        }

        LOGGER.info("Hand %s finished; winners=%s pot=%s", state.hand_id, winners, state.pot)
        await self._broadcast("end_hand", end_payload)
        if len(self.players_with_chips()) < 2:
            result = self.match_result_payload()
            LOGGER.info("Match over: %s", result["winner"])
            await self._broadcast("match_end", result)
            return
        await self._start_hand_locked()

    def match_result_payload(self) -> Dict[str, object]:
        remaining = self.players_with_chips()
        winner = remaining[0] if len(remaining) == 1 else None
        return {
            "winner": {"seat": winner.seat, "team": winner.name} if winner else None,
            "final_stacks": [
                {"seat": player.seat, "team": player.name, "stack": player.stack}
                for player in sorted(self.roster.values(), key=lambda p: p.seat)
            ],
        }

    # Move timer ------------------------------------------------------

    def _schedule_timer(self, seat: int) -> None:
        self._cancel_pending_action()
        if self.config.move_time_ms <= 0:
            return
        deadline = time.monotonic() + self.config.move_time_ms / 1000
        pending = PendingAction(seat=seat, deadline=deadline)
        pending.timer_task = asyncio.create_task(self._run_timer(seat, deadline))
        self.pending_action = pending

    async def _run_timer(self, seat: int, deadline: float) -> None:
        await asyncio.sleep(max(deadline - time.monotonic(), 0))
        await self._timer_expired(seat, deadline)

    async def _timer_expired(self, seat: int, deadline: float) -> None:
        async with self.lock:
            pending = self.pending_action
            if pending is None or pending.seat != seat or pending.deadline != deadline:
                return
            self.pending_action = None
            if self.state is None or self.state.current_player_seat != seat:
                return
            # Idle players fold; the engine has no notion of time.
            request = ActionRequest(seat=seat, action=ActionType.FOLD)
            self.state, outcome = engine.apply_request(self.state, request)
            event = self._action_event(request, outcome)
            event["timeout"] = True
            LOGGER.info("Seat %s timed out; folding", seat)
            await self._after_action_locked(event, outcome)

    def _cancel_pending_action(self) -> None:
        pending = self.pending_action
        self.pending_action = None
        if pending and pending.timer_task and pending.timer_task is not asyncio.current_task():
            pending.timer_task.cancel()

    # Messaging -------------------------------------------------------

    def _action_event(self, request: ActionRequest, outcome: ApplyOutcome) -> Dict[str, object]:
        assert self.state is not None
        event: Dict[str, object] = {
            "ev": request.action.value,
            "hand_id": self.state.hand_id,
            "seat": request.seat,
            "phase": self.state.phase.value,
            "pot": self.state.pot,
            "current_bet": self.state.current_bet,
            "next_actor": self.state.current_player_seat,
        }
        if request.action == ActionType.RAISE:
            event["amount"] = request.amount
        event.update(engine.outcome_payload(outcome))
        return event

    async def _broadcast(self, msg_type: str, payload: Dict[str, object]) -> None:
        targets = [session.websocket for session in self.sessions.values()]
        if not targets:
            return
        message = self._envelope(msg_type, payload)
        await asyncio.gather(*(socket.send(message) for socket in targets), return_exceptions=True)

    async def _broadcast_events(self, events: List[Dict[str, object]]) -> None:
        for event in events:
            await self._broadcast("event", event)

    async def _send_json(self, websocket: ServerConnection, msg_type: str, payload: Dict[str, object]) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(self, websocket: ServerConnection, code: str, msg: str) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg})

    def _envelope(self, msg_type: str, payload: Dict[str, object]) -> str:
        body = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        body.update(payload)
        return json.dumps(body)

    async def _read_message(self, websocket: ServerConnection) -> Optional[Dict[str, object]]:
        try:
            raw = await asyncio.wait_for(websocket.recv(), timeout=5)
        except (asyncio.TimeoutError, websockets.ConnectionClosed):
            return None
        return self._decode(raw)

    def _decode(self, raw: str) -> Dict[str, object]:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            return {}
        return message if isinstance(message, dict) else {}
