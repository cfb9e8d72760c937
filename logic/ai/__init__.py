"""logic/ai — Guard AI subpackage.

Modules
-------
perception  — vision test, suspicion curve, target memory, cone helpers
steering    — five-ray obstacle avoidance, velocity helpers, facing
states      — Patrol / Suspicious / Alerted / Search / Flee handlers
behavior    — state machine driver, distract / flee / despawn
"""
