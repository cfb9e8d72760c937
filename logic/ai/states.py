"""logic/ai/states.py — The five guard behaviour states.

Each state is a small dataclass holding only its own payload.  The
behaviour of a state lives in three plain functions registered in
``_HANDLERS``::

    enter(world, eid, state)                called once on transition in
    execute(world, eid, state, dt) → next   called every physics tick
    exit(world, eid, state)                 called once before the next enter

``execute`` returns the state to switch to, or ``None`` to stay.  The
actual switch (exit → cancel timers → enter) is done by
``logic.ai.behavior.change_state`` so the table stays closed: an object
that is not one of the five types raises ``TypeError`` on dispatch.

    Patrol ──level ≥ alert──────────────────────► Alerted
       │  └─level ≥ suspicion──► Suspicious ──≥ 1──┘   │
       ▲                           │ ≤ calm            │ lost sight
       ├───────────────────────────┘                   ▼
       ├──────────── timer / ≤ calm ─────────────── Search ──≥ 1──► Alerted
       └──────────── remaining ≤ 0 ──────────────── Flee  (forced, any state)
"""

from __future__ import annotations
import math
import random
from dataclasses import dataclass
from typing import ClassVar

from core.ecs import World
from core.tuning import get as _tun
from components import (
    Position, Facing, DetectionConfig, Perception, PatrolRoute,
    Locomotion, Behavior, AttackConfig, Recovery, AnimIntent, DevLog,
    GameClock,
)
from logic.ai.perception import find_player
from logic.ai.steering import drive, face_toward, halt, move_toward

# Look-around order while paused at a waypoint.
LOOK_DIRECTIONS = ("left", "right", "up", "down")

_LOOK_VECTORS = {
    "left": (-1.0, 0.0),
    "right": (1.0, 0.0),
    "up": (0.0, -1.0),
    "down": (0.0, 1.0),
}


# ── State payloads ───────────────────────────────────────────────────

@dataclass
class PatrolState:
    name: ClassVar[str] = "patrol"
    route_index: int = 0
    waiting: bool = False
    wait_elapsed: float = 0.0     # s into the current pause


@dataclass
class SuspiciousState:
    name: ClassVar[str] = "suspicious"


@dataclass
class AlertedState:
    name: ClassVar[str] = "alerted"


@dataclass
class SearchState:
    name: ClassVar[str] = "search"
    elapsed: float = 0.0          # s


@dataclass
class FleeState:
    name: ClassVar[str] = "flee"
    remaining: float = 0.0        # s
    direction: tuple[float, float] = (0.0, 0.0)


STATE_TYPES = (PatrolState, SuspiciousState, AlertedState, SearchState, FleeState)


# ── Shared helpers ───────────────────────────────────────────────────

def _speed(world: World, eid: int) -> float:
    loco = world.get(eid, Locomotion)
    return loco.speed if loco else 0.0


def _calm_level() -> float:
    return _tun("ai.states", "calm_level", 0.1)


def _set_flags(world: World, eid: int, *, alerted: bool | None = None,
               suspicious: bool | None = None) -> None:
    anim = world.get(eid, AnimIntent)
    if anim is None:
        return
    if alerted is not None:
        anim.is_alerted = alerted
    if suspicious is not None:
        anim.is_suspicious = suspicious


def _detection(world: World, eid: int) -> float:
    perc = world.get(eid, Perception)
    return perc.detection_level if perc else 0.0


# ── Patrol ───────────────────────────────────────────────────────────

def _patrol_enter(world: World, eid: int, state: PatrolState) -> None:
    halt(world, eid)
    _set_flags(world, eid, alerted=False, suspicious=False)
    rec = world.get(eid, Recovery)
    if rec is not None and rec.has_snapshot:
        state.route_index = rec.last_patrol_index
    route = world.get(eid, PatrolRoute)
    if route is not None:
        state.route_index = route.wrap(state.route_index)


def _warn_no_route(world: World, eid: int) -> None:
    beh = world.get(eid, Behavior)
    if beh is None or beh.warned_no_route:
        return
    beh.warned_no_route = True
    print(f"[PATROL] guard {eid}: no patrol points assigned, idling")
    log = world.res(DevLog)
    if log is not None:
        clock = world.res(GameClock)
        log.record(eid, "patrol", "no patrol points assigned",
                   t=clock.time if clock else 0.0)


def _patrol_transition(world: World, eid: int):
    perc = world.get(eid, Perception)
    cfg = world.get(eid, DetectionConfig)
    if perc is None or cfg is None or perc.player_eid is None:
        return None
    if perc.detection_level >= cfg.alert_threshold:
        return AlertedState()
    if perc.detection_level >= cfg.suspicion_threshold:
        return SuspiciousState()
    return None


def _patrol_wait(world: World, eid: int, state: PatrolState,
                 route: PatrolRoute, dt: float) -> None:
    loco = world.get(eid, Locomotion)
    wait_time = loco.wait_time if loco else 0.0
    state.wait_elapsed += dt
    if state.wait_elapsed >= wait_time:
        state.route_index = route.wrap(state.route_index + 1)
        state.waiting = False
        state.wait_elapsed = 0.0
        return

    look_time = wait_time / len(LOOK_DIRECTIONS)
    look = LOOK_DIRECTIONS[min(len(LOOK_DIRECTIONS) - 1,
                               int(state.wait_elapsed / look_time))]
    facing = world.get(eid, Facing)
    if facing is not None:
        facing.direction = look
    anim = world.get(eid, AnimIntent)
    if anim is not None:
        anim.move_x, anim.move_y = _LOOK_VECTORS[look]
        anim.is_moving = False


def _patrol_execute(world: World, eid: int, state: PatrolState, dt: float):
    route = world.get(eid, PatrolRoute)
    if route is None or len(route) == 0:
        _warn_no_route(world, eid)
        halt(world, eid)
        return _patrol_transition(world, eid)

    # The route may have shrunk since the index was stored
    state.route_index = route.wrap(state.route_index)

    if state.waiting:
        _patrol_wait(world, eid, state, route, dt)
        return _patrol_transition(world, eid)

    pos = world.get(eid, Position)
    loco = world.get(eid, Locomotion)
    reached = loco.reached_distance if loco else 0.5
    tx, ty = route.point(state.route_index)
    if pos is not None and math.hypot(tx - pos.x, ty - pos.y) <= reached:
        halt(world, eid)
        state.waiting = True
        state.wait_elapsed = 0.0
    else:
        move_toward(world, eid, tx, ty, _speed(world, eid))
    return _patrol_transition(world, eid)


def _patrol_exit(world: World, eid: int, state: PatrolState) -> None:
    halt(world, eid)


# ── Suspicious ───────────────────────────────────────────────────────

def _suspicious_enter(world: World, eid: int, state: SuspiciousState) -> None:
    _set_flags(world, eid, alerted=False, suspicious=True)


def _suspicious_execute(world: World, eid: int, state: SuspiciousState, dt: float):
    perc = world.get(eid, Perception)
    if perc is not None and perc.last_known is not None:
        mult = _tun("ai.states", "suspicious_speed_mult", 0.5)
        tx, ty = perc.last_known
        move_toward(world, eid, tx, ty, _speed(world, eid) * mult)
    else:
        halt(world, eid)

    level = _detection(world, eid)
    if level >= 1.0:
        return AlertedState()
    if level <= _calm_level():
        return PatrolState()
    return None


def _suspicious_exit(world: World, eid: int, state: SuspiciousState) -> None:
    halt(world, eid)
    _set_flags(world, eid, suspicious=False)


# ── Alerted ──────────────────────────────────────────────────────────

def _alerted_enter(world: World, eid: int, state: AlertedState) -> None:
    _set_flags(world, eid, alerted=True, suspicious=False)


def _alerted_execute(world: World, eid: int, state: AlertedState, dt: float):
    perc = world.get(eid, Perception)
    target = None
    if perc is not None and perc.can_see_player and world.alive(perc.player_eid):
        target = world.get(perc.player_eid, Position)
    if target is None:
        return SearchState()

    pos = world.get(eid, Position)
    atk = world.get(eid, AttackConfig)
    dx, dy = target.x - pos.x, target.y - pos.y
    facing = world.get(eid, Facing)
    if facing is not None:
        face_toward(facing, dx, dy)

    # Hold still during a swing, and inside range so the combat check can fire
    if atk is not None and (atk.attacking or math.hypot(dx, dy) <= atk.range):
        halt(world, eid)
        return None

    mult = _tun("ai.states", "chase_speed_mult", 1.5)
    drive(world, eid, dx, dy, _speed(world, eid) * mult)
    return None


def _alerted_exit(world: World, eid: int, state: AlertedState) -> None:
    halt(world, eid)


# ── Search ───────────────────────────────────────────────────────────

def _search_enter(world: World, eid: int, state: SearchState) -> None:
    state.elapsed = 0.0
    _set_flags(world, eid, suspicious=False)


def _search_execute(world: World, eid: int, state: SearchState, dt: float):
    state.elapsed += dt
    perc = world.get(eid, Perception)
    if perc is not None and perc.last_known is not None:
        loco = world.get(eid, Locomotion)
        reached = loco.reached_distance if loco else 0.5
        tx, ty = perc.last_known
        move_toward(world, eid, tx, ty, _speed(world, eid), arrival=reached)
    else:
        halt(world, eid)

    level = _detection(world, eid)
    if level >= 1.0:
        return AlertedState()
    if (state.elapsed >= _tun("ai.states", "search_duration", 5.0)
            or level <= _calm_level()):
        return PatrolState()
    return None


def _search_exit(world: World, eid: int, state: SearchState) -> None:
    halt(world, eid)
    _set_flags(world, eid, alerted=False)


# ── Flee ─────────────────────────────────────────────────────────────

def _random_direction() -> tuple[float, float]:
    a = random.uniform(0.0, 2.0 * math.pi)
    return math.cos(a), math.sin(a)


def _flee_enter(world: World, eid: int, state: FleeState) -> None:
    _set_flags(world, eid, alerted=False, suspicious=False)
    pos = world.get(eid, Position)
    _, player_pos = find_player(world)
    direction = None
    if pos is not None and player_pos is not None:
        dx, dy = pos.x - player_pos.x, pos.y - player_pos.y
        d = math.hypot(dx, dy)
        if d > 1e-6:
            direction = (dx / d, dy / d)
    state.direction = direction or _random_direction()
    anim = world.get(eid, AnimIntent)
    if anim is not None:
        anim.is_moving = True


def _flee_execute(world: World, eid: int, state: FleeState, dt: float):
    state.remaining -= dt
    mult = _tun("ai.states", "flee_speed_mult", 2.0)
    drive(world, eid, state.direction[0], state.direction[1],
          _speed(world, eid) * mult)
    if state.remaining <= 0.0:
        return PatrolState()
    return None


def _flee_exit(world: World, eid: int, state: FleeState) -> None:
    halt(world, eid)


# ── Dispatch ─────────────────────────────────────────────────────────

_HANDLERS = {
    PatrolState:     (_patrol_enter, _patrol_execute, _patrol_exit),
    SuspiciousState: (_suspicious_enter, _suspicious_execute, _suspicious_exit),
    AlertedState:    (_alerted_enter, _alerted_execute, _alerted_exit),
    SearchState:     (_search_enter, _search_execute, _search_exit),
    FleeState:       (_flee_enter, _flee_execute, _flee_exit),
}


def _handlers(state):
    try:
        return _HANDLERS[type(state)]
    except KeyError:
        raise TypeError(f"not a behaviour state: {state!r}") from None


def enter_state(world: World, eid: int, state) -> None:
    _handlers(state)[0](world, eid, state)


def execute_state(world: World, eid: int, state, dt: float):
    return _handlers(state)[1](world, eid, state, dt)


def exit_state(world: World, eid: int, state) -> None:
    _handlers(state)[2](world, eid, state)


def state_name(state) -> str:
    return state.name if state is not None else "none"


STATE_NAMES = {cls.name: cls for cls in STATE_TYPES}


def make_state(name: str):
    """Fresh state for a descriptor name ("patrol", "alerted" …).

    Unknown names fall back to Patrol, matching how guard descriptors
    treat every other bad value.
    """
    return STATE_NAMES.get(name, PatrolState)()
