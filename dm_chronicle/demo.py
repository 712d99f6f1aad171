"""Create demo games for development/testing."""

import shutil

from dm_chronicle import storage
from dm_chronicle.characters import new_game_state
from dm_chronicle.models import InventoryItem

DEMO_USER = "demo"

DEMO_GAMES = [
    {
        "scenario_id": "goblin-market",
        "character_name": "Wren Halloway",
        "base_attributes": {"Strength": 6, "Agility": 9, "Intellect": 7, "Charm": 8},
        "skills": ["Haggling", "Stealth"],
        "inventory": [("Copper coins", 12), ("Lantern", 1)],
        "flags": {"met_gatekeeper": True},
    },
    {
        "scenario_id": "sunken-lighthouse",
        "character_name": "Isolde Marrow",
        "skills": ["Swimming"],
        "inventory": [("Rope", 1)],
        "flags": {},
    },
]


def create_demo_data() -> None:
    """Wipe existing games and create fresh demo games for DEMO_USER."""
    if storage.games_dir().exists():
        shutil.rmtree(storage.games_dir())
    storage.games_dir().mkdir(parents=True, exist_ok=True)

    first_id = None
    for demo in DEMO_GAMES:
        scenario = storage.get_scenario(demo["scenario_id"])
        if scenario is None:
            continue
        state = new_game_state(
            scenario,
            demo["character_name"],
            base_attributes=demo.get("base_attributes"),
            skills=demo.get("skills"),
        )
        state.inventory = [InventoryItem(item=name, quantity=qty) for name, qty in demo["inventory"]]
        state.flags = dict(demo["flags"])
        record = storage.create_game(DEMO_USER, scenario.id, state.character_name, state)
        first_id = first_id or record.id

    if first_id:
        storage.set_active_game(first_id)
