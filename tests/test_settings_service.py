import json

from models.settings import AppSettings, merge_settings
from services.settings import SettingsService


def test_load_writes_defaults(store):
    service = SettingsService(store)
    assert service.load() == AppSettings()
    assert store.get_settings() == AppSettings()


def test_update_persists_and_notifies(settings_service, store):
    seen = []
    settings_service.subscribe(seen.append)
    updated = settings_service.update(theme="dark", notifications_enabled=False)
    assert updated.theme == "dark"
    assert not settings_service.notifications_enabled()
    assert store.get_settings().theme == "dark"
    assert seen == [updated]


def test_invalid_values_are_ignored(settings_service):
    updated = settings_service.update(theme="neon", backup_interval=-3, language=42)
    assert updated == AppSettings()


def test_nested_updates(settings_service):
    settings_service.update_shortcuts(undo="Ctrl+U")
    settings_service.update_ui_preferences(task_view_mode="kanban", window_size={"width": 800, "height": 600})
    current = settings_service.current
    assert current.shortcuts.undo == "Ctrl+U"
    assert current.shortcuts.search == "CmdOrCtrl+F"
    assert current.ui_preferences.task_view_mode == "kanban"
    assert current.ui_preferences.window_size == (800, 600)


def test_reset(settings_service):
    settings_service.update(theme="light")
    assert settings_service.reset() == AppSettings()


def test_export_import_round_trip(settings_service, store):
    settings_service.update(language="de", auto_backup=False)
    exported = settings_service.export_settings()
    assert json.loads(exported)["ui_preferences"]["window_size"] == {"width": 1000, "height": 700}

    fresh = SettingsService(store)
    assert fresh.import_settings(exported)
    assert fresh.current.language == "de"
    assert fresh.current.auto_backup is False


def test_import_rejects_garbage(settings_service):
    assert settings_service.import_settings("{not json") is False
    assert settings_service.import_settings("[1, 2]") is False
    assert settings_service.current == AppSettings()


def test_merge_settings_ignores_non_mapping():
    current = AppSettings(theme="dark")
    assert merge_settings(current, None) is current
