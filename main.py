"""
main.py — Bootstrap

1. Load tuning constants and guard archetypes
2. Build the world and load the demo level
3. Create the app
4. Push the courtyard scene
5. Run
"""

from core import tuning
from core.app import App
from logic.guard_factory import make_world, load_guard_types, load_level
from scenes.stealth_scene import StealthScene


def main():
    tuning.load()
    load_guard_types()

    world = make_world()
    level = load_level(world)

    app = App(title="Guard Lab", width=960, height=640, world=world)
    app.set_scene(StealthScene(guards=level["guards"]))
    app.run()


if __name__ == "__main__":
    main()
