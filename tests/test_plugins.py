import pytest

from prokon import cli, plugins
from prokon.plugins import PluginNotFoundError


class _EntryPoint:
    def __init__(self, name, target):
        self.name = name
        self._target = target

    def load(self):
        if isinstance(self._target, Exception):
            raise self._target
        return self._target


class GoodEditor:
    def edit(self, request):
        return b""


class GoodScanner:
    def scan(self, image_b64):
        return {}


class NotAnEditor:
    pass


@pytest.fixture
def installed(monkeypatch):
    groups = {
        plugins.EDITOR_GROUP: [
            _EntryPoint("gemini", GoodEditor),
            _EntryPoint("broken", ImportError("missing dependency")),
            _EntryPoint("bogus", NotAnEditor),
        ],
        plugins.SCANNER_GROUP: [_EntryPoint("materials", GoodScanner)],
    }
    monkeypatch.setattr(plugins, "entry_points", lambda group: groups.get(group, []))
    return groups


def test_discovery_skips_broken_and_foreign_plugins(installed):
    editors = plugins.discover_editors()
    assert list(editors) == ["gemini"]
    assert isinstance(editors["gemini"], GoodEditor)
    assert list(plugins.discover_scanners()) == ["materials"]


def test_select_defaults_to_only_installed(installed):
    assert isinstance(plugins.select_editor(), GoodEditor)
    assert isinstance(plugins.select_scanner("materials"), GoodScanner)


def test_select_with_several_installed_needs_a_name(installed):
    installed[plugins.EDITOR_GROUP].append(_EntryPoint("other", GoodEditor))
    assert plugins.select_editor() is None
    assert isinstance(plugins.select_editor("other"), GoodEditor)


def test_select_unknown_name(installed):
    with pytest.raises(PluginNotFoundError, match="gemini"):
        plugins.select_editor("dall-e")


def test_nothing_installed(monkeypatch):
    monkeypatch.setattr(plugins, "entry_points", lambda group: [])
    assert plugins.discover_editors() == {}
    assert plugins.select_scanner() is None


def test_cli_lists_plugins(installed, capsys):
    assert cli.main(["plugins"]) == 0
    out = capsys.readouterr().out
    assert "Editors: gemini" in out
    assert "Scanners: materials" in out


def test_cli_gui_rejects_unknown_editor(installed, tmp_path):
    config = tmp_path / "visualizer.yaml"
    config.write_text("{}\n", encoding="utf-8")
    assert cli.main(["gui", "--editor", "dall-e", "--config", str(config)]) == 2
