"""File-based JSON storage.

Data layout:
  data/
    games/
      <id>.json          One game session: owner, scenario, active flag,
                         timestamps, version and the GameState document
    config.json          App settings (narrator connection, stage sampling)
  presets/
    scenarios/           Built-in read-only scenario catalog

Games are addressed by an opaque hex id. Writes go through put_game(), which
bumps the version and can refuse a stale write (see games.py).

Config: get_config() returns defaults merged with stored values.
update_config() applies partial updates — narrator and stages merged
key-by-key, scalars overwritten.
"""

# Re-export all public symbols so `from dm_chronicle import storage` keeps working.

from .core import (  # noqa: F401
    data_dir,
    games_dir,
    init_storage,
    presets_dir,
    scenarios_dir,
)

from .scenarios import (  # noqa: F401
    get_scenario,
    list_scenarios,
)

from .games import (  # noqa: F401
    create_game,
    delete_game,
    get_game,
    list_games,
    put_game,
    set_active_game,
)

from .config import (  # noqa: F401
    get_config,
    update_config,
)
