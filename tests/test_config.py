"""Tests for configuration, palette helpers, logging, and validation feedback."""

import json

import pytest
from pydantic import BaseModel, ValidationError

from tileforge.config import Config
from tileforge.logging_utils import Color, colored, log_error
from tileforge.palette import DEFAULT_TILE_NAMES, load_tile_dictionary, tile_name
from tileforge.validation import preview_input, validation_feedback


def test_default_config_is_valid():
    Config.validate()
    text = Config.display()

    assert text.startswith("Tileforge Configuration:")
    assert f"{Config.GRID_WIDTH}x{Config.GRID_HEIGHT}" in text


def test_invalid_config_values_are_rejected(monkeypatch, tmp_path):
    monkeypatch.setattr(Config, "GRID_WIDTH", 0)
    with pytest.raises(ValueError, match="GRID_WIDTH"):
        Config.validate()

    monkeypatch.setattr(Config, "GRID_WIDTH", 40)
    monkeypatch.setattr(Config, "PRUNE_MARGIN", -1)
    with pytest.raises(ValueError, match="PRUNE_MARGIN"):
        Config.validate()

    monkeypatch.setattr(Config, "PRUNE_MARGIN", 2)
    monkeypatch.setattr(Config, "TILE_DICTIONARY_PATH", str(tmp_path / "nope.json"))
    with pytest.raises(ValueError, match="missing file"):
        Config.validate()


def test_load_tile_dictionary(tmp_path):
    path = tmp_path / "tiles.json"
    path.write_text(json.dumps({"0": "meadow", "45": "picket"}), "utf-8")

    names = load_tile_dictionary(path)

    assert names == {0: "meadow", 45: "picket"}
    assert tile_name(45, names) == "picket"
    assert tile_name(46, names) == "tile #46"


def test_tile_dictionary_must_be_an_object(tmp_path):
    path = tmp_path / "tiles.json"
    path.write_text("[1, 2]", "utf-8")

    with pytest.raises(ValueError):
        load_tile_dictionary(path)


def test_tile_name_defaults():
    assert tile_name(-1) == "empty"
    assert tile_name(45) == DEFAULT_TILE_NAMES[45]


def test_colored_respects_no_color(monkeypatch):
    monkeypatch.delenv("TILEFORGE_NO_COLOR", raising=False)
    assert colored("hi", Color.RED) == f"{Color.RED.value}hi{Color.RESET.value}"

    monkeypatch.setenv("TILEFORGE_NO_COLOR", "1")
    assert colored("hi", Color.RED, bold=True) == "hi"


def test_log_error_uses_tag(monkeypatch, capsys):
    monkeypatch.setenv("TILEFORGE_NO_COLOR", "1")
    log_error("boom")

    assert capsys.readouterr().out == "[!] boom\n"


class _Sample(BaseModel):
    width: int
    name: str


def test_validation_feedback_lists_every_issue():
    with pytest.raises(ValidationError) as excinfo:
        _Sample.model_validate({"width": "wide"})

    feedback = validation_feedback(excinfo.value, tool_name="box")

    assert feedback.text.splitlines()[0] == "Error: invalid arguments for box."
    assert len(feedback.issues) == 2
    assert feedback.issues[0].startswith("width: ")
    assert "[type=int_parsing]" in feedback.issues[0]
    assert "received='wide'" in feedback.issues[0]
    assert feedback.issues[1].startswith("name: Field required [type=missing]")


def test_preview_input_is_cut_to_the_limit():
    assert preview_input(None) == "null"
    assert preview_input("x" * 200, limit=10) == "'xxxxxx..."


class _Wrapper(BaseModel):
    sample: _Sample


def test_validation_feedback_joins_nested_locations():
    with pytest.raises(ValidationError) as excinfo:
        _Wrapper.model_validate({"sample": {"width": 3, "name": None}})

    feedback = validation_feedback(excinfo.value, tool_name="house")

    assert feedback.issues == ["sample.name: Input should be a valid string [type=string_type] | received=null"]
    assert feedback.text == (
        "Error: invalid arguments for house.\n"
        "- sample.name: Input should be a valid string [type=string_type] | received=null"
    )
