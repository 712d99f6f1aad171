"""Storage initialization and path helpers."""

from pathlib import Path

_data_dir: Path | None = None
_presets_dir: Path | None = None


def init_storage(data_dir: Path, presets_dir: Path | None = None) -> None:
    global _data_dir, _presets_dir
    from . import scenarios as _scenarios_mod

    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    games_dir().mkdir(exist_ok=True)
    if presets_dir is None:
        # Default: repo_root/presets
        presets_dir = Path(__file__).parent.parent.parent / "presets"
    _presets_dir = presets_dir
    _scenarios_mod._catalog = None  # reset cached catalog


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def presets_dir() -> Path:
    assert _presets_dir is not None, "Call init_storage() before using storage"
    return _presets_dir


def games_dir() -> Path:
    return data_dir() / "games"


def scenarios_dir() -> Path:
    return presets_dir() / "scenarios"
