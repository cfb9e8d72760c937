# core package: engine-level code (ECS, geometry, timers, events, tuning, app shell)
__all__ = ["app", "ecs", "scene", "geometry", "timers", "events", "tuning", "constants"]
