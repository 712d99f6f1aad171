"""Tests for global app config."""

from dm_chronicle import storage


def test_defaults():
    config = storage.get_config()
    assert config["narrator"]["provider_format"] == "openai"
    assert config["stages"]["extract_delta"]["temperature"] == 0.0
    assert config["history_window"] == 40
    assert config["narrative_length_hint"] == 600


def test_defaults_not_shared():
    storage.get_config()["stages"]["narrative"]["temperature"] = 2.0
    assert storage.get_config()["stages"]["narrative"]["temperature"] == 0.8


def test_update_persists():
    storage.update_config({"narrator": {"provider_url": "http://localhost:5001"}})
    config = storage.get_config()
    assert config["narrator"]["provider_url"] == "http://localhost:5001"
    assert config["narrator"]["model"] == "gpt-4.1-mini"
    assert (storage.data_dir() / "config.json").is_file()


def test_update_stage_options_merge():
    storage.update_config({"stages": {"narrative": {"max_tokens": 400}}})
    stages = storage.get_config()["stages"]
    assert stages["narrative"] == {"temperature": 0.8, "max_tokens": 400}
    assert stages["parse_intent"]["max_tokens"] == 300


def test_unknown_keys_ignored():
    config = storage.update_config({
        "favourite_colour": "green",
        "stages": {"dream_sequence": {"temperature": 1.0}},
    })
    assert "favourite_colour" not in config
    assert "dream_sequence" not in config["stages"]


def test_scalar_keys_overwritten():
    storage.update_config({"history_window": 10, "narrative_length_hint": 300})
    config = storage.get_config()
    assert config["history_window"] == 10
    assert config["narrative_length_hint"] == 300
