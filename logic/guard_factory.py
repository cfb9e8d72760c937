"""logic/guard_factory.py — World setup and table-driven guard spawning.

``make_world`` is the composition root: it installs every resource the
guard systems look up (clock, scheduler, event bus, geometry, dev log)
and wires the collision → recovery subscription.

Guards come from archetype descriptors in ``data/guards.toml``.  A
``_COMPONENT_TABLE`` maps descriptor sub-tables to component classes and
field schemas; ``spawn_from_descriptor`` iterates it, casting each field
and falling back to the default on bad data.  Out-of-range detection
values are clamped rather than rejected.

Guards of the same archetype share one frozen ``DetectionConfig``,
cached by archetype name until the types are reloaded.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Callable

try:
    import tomllib                         # Python 3.11+
except ModuleNotFoundError:                # pragma: no cover
    import tomli as tomllib                # Python < 3.11

from core.constants import LAYER_NAMES, SIGHT_MASK, AVOID_MASK, LAYER_TERRAIN
from core.ecs import World
from core.events import EventBus
from core.geometry import Geometry
from core.timers import Scheduler
from core.tuning import get as _tun
from components import (
    Position, Velocity, Collider, Facing, Identity, Sprite, Health,
    Player, DetectionConfig, PatrolRoute, Locomotion, Avoidance,
    Perception, Behavior, AttackConfig, Recovery, AnimIntent,
    GameClock, DevLog,
)
from logic.ai.behavior import change_state
from logic.ai.states import make_state
from logic.recovery import install_recovery

DATA_DIR = Path(__file__).resolve().parent.parent / "data"
GUARDS_PATH = DATA_DIR / "guards.toml"
LEVEL_PATH = DATA_DIR / "level.toml"

_FACINGS = ("right", "left", "up", "down")


# ── Field-schema helpers ─────────────────────────────────────────────

def _float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _bool(v: Any, default: bool = False) -> bool:
    return bool(v) if v is not None else default


def _str(v: Any, default: str = "") -> str:
    return str(v) if v is not None else default


def _mask(v: Any, default: int = 0) -> int:
    """Layer mask from an int or a list of layer names."""
    if isinstance(v, bool):
        return default
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        v = [v]
    if isinstance(v, (list, tuple)):
        mask = 0
        for name in v:
            mask |= LAYER_NAMES.get(str(name).lower(), 0)
        return mask
    return default


def _clamp(lo: float, hi: float) -> Callable[[Any, float], float]:
    def cast(v: Any, default: float) -> float:
        return min(hi, max(lo, _float(v, default)))
    return cast


def _point(v: Any) -> tuple[float, float] | None:
    if isinstance(v, dict):
        v = (v.get("x"), v.get("y"))
    if not isinstance(v, (list, tuple)) or len(v) < 2:
        return None
    try:
        return float(v[0]), float(v[1])
    except (TypeError, ValueError):
        return None


# ── Component table ──────────────────────────────────────────────────
# Each entry: (descriptor_key, ComponentClass, field_map)
# field_map: dict mapping component-kwarg → (descriptor-sub-key, cast, default)

_DETECTION_FIELDS: dict[str, tuple[str, Callable, Any]] = {
    "view_radius":          ("view_radius",          _clamp(0.01, 1e6), 5.0),
    "view_angle":           ("view_angle",           _clamp(0.0, 360.0), 90.0),
    "obstacle_mask":        ("obstacle_layers",      _mask, SIGHT_MASK),
    "suspicion_threshold":  ("suspicion_threshold",  _clamp(0.0, 1.0), 0.3),
    "alert_threshold":      ("alert_threshold",      _clamp(0.0, 1.0), 0.8),
    "suspicion_build_time": ("suspicion_build_time", _clamp(0.01, 1e6), 3.0),
    "memory_duration":      ("memory_duration",      _clamp(0.0, 1e6), 5.0),
}

_COMPONENT_TABLE: list[tuple[str, type, dict[str, tuple[str, Callable, Any]]]] = [
    ("sprite", Sprite, {
        "char":  ("char",  _str,   "G"),
        "color": ("color", lambda v, d: tuple(v) if v else d, (200, 200, 200)),
        "layer": ("layer", lambda v, d: int(v) if v is not None else d, 1),
    }),
    ("collider", Collider, {
        "width":  ("width",  _float, 0.8),
        "height": ("height", _float, 0.8),
    }),
    ("movement", Locomotion, {
        "speed":            ("speed",            _clamp(0.0, 1e6), 2.0),
        "wait_time":        ("wait_time",        _clamp(0.0, 1e6), 2.0),
        "reached_distance": ("reached_distance", _clamp(0.0, 1e6), 0.5),
    }),
    ("avoidance", Avoidance, {
        "ray_distance":    ("ray_distance",    _clamp(0.0, 1e6), 1.0),
        "avoidance_force": ("avoidance_force", _float, 2.0),
        "layer_mask":      ("layers",          _mask, AVOID_MASK),
    }),
    ("attack", AttackConfig, {
        "damage":   ("damage",   _clamp(0.0, 1e6), 10.0),
        "range":    ("range",    _clamp(0.0, 1e6), 1.5),
        "cooldown": ("cooldown", _clamp(0.0, 1e6), 1.0),
    }),
    ("recovery", Recovery, {
        "enabled":            ("enabled",            _bool, True),
        "cooldown":           ("cooldown",           _clamp(0.0, 1e6), 5.0),
        "disappear_duration": ("disappear_duration", _clamp(0.0, 1e6), 1.0),
        "terrain_mask":       ("terrain_layers",     _mask, LAYER_TERRAIN),
    }),
]


def _build_component(cls: type, field_map: dict, sub: dict, **overrides) -> Any:
    """Construct a component from its field_map and descriptor sub-dict."""
    kwargs: dict[str, Any] = {}
    for kwarg_name, (sub_key, cast_fn, default) in field_map.items():
        raw = sub.get(sub_key)
        if raw is None:
            kwargs[kwarg_name] = default
        else:
            try:
                kwargs[kwarg_name] = cast_fn(raw, default)
            except (TypeError, ValueError):
                kwargs[kwarg_name] = default
    kwargs.update(overrides)
    return cls(**kwargs)


# ── Guard types ──────────────────────────────────────────────────────

_guard_types: dict[str, dict] = {}
_detection_cache: dict[str, DetectionConfig] = {}


def _read_toml(path: Path) -> dict:
    if not path.exists():
        print(f"[FACTORY] {path} not found")
        return {}
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_guard_types(path: str | Path | None = None) -> dict[str, dict]:
    """Load guard archetypes.  Invalidates the shared config cache."""
    global _guard_types
    data = _read_toml(Path(path) if path is not None else GUARDS_PATH)
    _guard_types = {k: v for k, v in data.items() if isinstance(v, dict)}
    _detection_cache.clear()
    print(f"[FACTORY] Loaded {len(_guard_types)} guard types")
    return dict(_guard_types)


def guard_type(name: str) -> dict:
    return _guard_types.get(name, {})


def detection_config_for(type_name: str, desc: dict | None = None) -> DetectionConfig:
    """Shared DetectionConfig for an archetype (built once, then cached)."""
    cfg = _detection_cache.get(type_name)
    if cfg is None:
        if desc is None:
            desc = guard_type(type_name)
        sub = desc.get("detection") if isinstance(desc.get("detection"), dict) else {}
        cfg = _build_component(DetectionConfig, _DETECTION_FIELDS, sub)
        _detection_cache[type_name] = cfg
    return cfg


# ── World setup ──────────────────────────────────────────────────────

def make_world(geometry: Geometry | None = None) -> World:
    """Fresh world with every resource the guard systems expect."""
    world = World()
    world.set_res(GameClock())
    world.set_res(Scheduler())
    world.set_res(EventBus())
    world.set_res(geometry if geometry is not None else Geometry())
    world.set_res(DevLog())
    install_recovery(world)
    return world


def spawn_player(world: World, x: float, y: float, *,
                 speed: float = 4.0, health: float = 30.0) -> int:
    eid = world.spawn()
    world.add(eid, Identity(name="player", kind="player"))
    world.add(eid, Player(speed=speed))
    world.add(eid, Position(x, y))
    world.add(eid, Velocity())
    world.add(eid, Collider(width=0.6, height=0.6))
    world.add(eid, Facing())
    world.add(eid, Health(current=health, maximum=health))
    world.add(eid, Sprite(char="@", color=(255, 255, 100), layer=2))
    return eid


def spawn_guard(world: World, x: float, y: float, *,
                route: list[tuple[float, float]] | None = None,
                config: DetectionConfig | None = None,
                facing: str = "right",
                locomotion: Locomotion | None = None,
                avoidance: Avoidance | None = None,
                attack: AttackConfig | None = None,
                recovery: Recovery | None = None,
                initial_state: str = "patrol",
                name: str = "guard") -> int:
    """Create a guard entity and enter its initial state."""
    eid = world.spawn()
    world.add(eid, Identity(name=name, kind="guard"))
    world.add(eid, Position(x, y))
    world.add(eid, Velocity())
    world.add(eid, Collider())
    world.add(eid, Facing(direction=facing if facing in _FACINGS else "right"))
    world.add(eid, Sprite(char="G", color=(200, 200, 200), layer=1))
    world.add(eid, config if config is not None else DetectionConfig())
    world.add(eid, Perception(interval=_tun("ai.perception", "interval", 0.2)))
    world.add(eid, PatrolRoute(waypoints=list(route or [])))
    world.add(eid, locomotion if locomotion is not None else Locomotion())
    world.add(eid, avoidance if avoidance is not None else Avoidance())
    world.add(eid, attack if attack is not None else AttackConfig())
    world.add(eid, recovery if recovery is not None else Recovery())
    world.add(eid, AnimIntent())
    world.add(eid, Behavior())
    change_state(world, eid, make_state(initial_state))
    return eid


def spawn_from_descriptor(world: World, type_name: str, x: float, y: float, *,
                          route: list | None = None,
                          facing: str | None = None,
                          desc: dict | None = None) -> int:
    """Spawn a guard of archetype *type_name* at (x, y)."""
    if desc is None:
        desc = guard_type(type_name)
    if not desc:
        print(f"[FACTORY] unknown guard type '{type_name}', using defaults")

    comps: dict[type, Any] = {}
    for key, cls, field_map in _COMPONENT_TABLE:
        sub = desc.get(key)
        comps[cls] = _build_component(cls, field_map, sub if isinstance(sub, dict) else {})

    points = [p for p in (_point(v) for v in (route or [])) if p is not None]
    eid = spawn_guard(
        world, x, y,
        route=points,
        config=detection_config_for(type_name, desc),
        facing=_str(facing if facing is not None else desc.get("facing"), "right"),
        locomotion=comps[Locomotion],
        avoidance=comps[Avoidance],
        attack=comps[AttackConfig],
        recovery=comps[Recovery],
        initial_state=_str(desc.get("initial_state"), "patrol"),
        name=_str(desc.get("name"), type_name),
    )
    world.add(eid, comps[Sprite])
    world.add(eid, comps[Collider])
    return eid


# ── Level loading ────────────────────────────────────────────────────

def load_level(world: World, path: str | Path | None = None) -> dict:
    """Populate *world* from a level file.

    Returns ``{"player": eid | None, "guards": [eid, ...]}``.
    """
    data = _read_toml(Path(path) if path is not None else LEVEL_PATH)
    geo = world.res(Geometry)
    if geo is None:
        geo = world.set_res(Geometry())

    for ob in data.get("obstacles", []):
        if not isinstance(ob, dict):
            continue
        geo.add_box(_float(ob.get("x")), _float(ob.get("y")),
                    _float(ob.get("w"), 1.0), _float(ob.get("h"), 1.0),
                    layer=LAYER_NAMES.get(_str(ob.get("layer"), "wall"), LAYER_NAMES["wall"]))

    player = None
    p = data.get("player")
    if isinstance(p, dict):
        player = spawn_player(world, _float(p.get("x")), _float(p.get("y")),
                              speed=_float(p.get("speed"), 4.0),
                              health=_float(p.get("health"), 30.0))

    guards = []
    for g in data.get("guards", []):
        if not isinstance(g, dict):
            continue
        guards.append(spawn_from_descriptor(
            world, _str(g.get("type"), "sentry"),
            _float(g.get("x")), _float(g.get("y")),
            route=g.get("route", []),
            facing=g.get("facing"),
        ))

    print(f"[LEVEL] {len(geo.obstacles)} obstacles, {len(guards)} guards")
    return {"player": player, "guards": guards}
