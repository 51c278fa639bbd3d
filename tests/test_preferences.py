"""
Tests for saved user preferences
"""
from pawsafe.core.preferences import (
    get_proximity_alerts_enabled,
    load_preferences,
    save_preference,
    set_proximity_alerts_enabled,
)


class TestPreferences:
    """Test suite for the preferences file."""

    def test_missing_file_uses_default(self, tmp_path):
        path = tmp_path / "preferences.json"

        assert load_preferences(path) == {}
        assert get_proximity_alerts_enabled(path) is True
        assert get_proximity_alerts_enabled(path, default=False) is False

    def test_toggle_saved(self, tmp_path):
        path = tmp_path / "nested" / "preferences.json"

        set_proximity_alerts_enabled(path, False)

        assert get_proximity_alerts_enabled(path, default=True) is False
        set_proximity_alerts_enabled(path, True)
        assert get_proximity_alerts_enabled(path, default=False) is True

    def test_other_keys_kept(self, tmp_path):
        path = tmp_path / "preferences.json"
        save_preference(path, "mapStyle", "satellite")

        set_proximity_alerts_enabled(path, False)

        assert load_preferences(path) == {"mapStyle": "satellite", "proximityAlertsEnabled": False}

    def test_corrupt_file_uses_default(self, tmp_path):
        """Test a truncated file falls back to the default instead of raising."""
        path = tmp_path / "preferences.json"
        path.write_text('{"proximityAlertsEnabled": fa', encoding="utf-8")

        assert load_preferences(path) == {}
        assert get_proximity_alerts_enabled(path, default=True) is True

    def test_non_bool_value_ignored(self, tmp_path):
        path = tmp_path / "preferences.json"
        save_preference(path, "proximityAlertsEnabled", "no")

        assert get_proximity_alerts_enabled(path, default=True) is True
