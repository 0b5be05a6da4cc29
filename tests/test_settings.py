"""Tests for settings persistence."""

import json

from indoor_editor.settings import EditorSettings, load_settings, save_settings


def test_missing_file_gives_defaults(tmp_path):
    assert load_settings(tmp_path / "absent.json") == EditorSettings()


def test_save_then_load(tmp_path):
    settings = EditorSettings(api_base_url="https://maps.example.org", api_token="t0k",
                              map_center=(46.6, 24.7), server_symmetric_connections=False)
    path = save_settings(settings, tmp_path / "nested" / "settings.json")
    assert path.exists()
    assert json.loads(path.read_text(encoding='utf-8'))['map_center'] == [46.6, 24.7]

    loaded = load_settings(path)
    assert loaded == settings
    assert isinstance(loaded.map_center, tuple)


def test_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding='utf-8')
    assert load_settings(path) == EditorSettings()


def test_non_object_gives_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding='utf-8')
    assert load_settings(path) == EditorSettings()


def test_unknown_keys_are_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({'request_timeout': 2.5, 'theme': "dark"}), encoding='utf-8')
    loaded = load_settings(path)
    assert loaded.request_timeout == 2.5
    assert not hasattr(loaded, 'theme')
