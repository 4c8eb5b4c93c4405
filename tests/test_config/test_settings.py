"""配置测试"""

import pytest

from ycascade.config import (
    AppSettings,
    CascadeSettings,
    UserStampSettings,
    configure_cascade,
    get_cascade_settings,
    get_user_stamp_settings,
    reset_cascade_settings,
)


class TestCascadeSettings:
    """级联配置默认值与环境变量"""

    def test_defaults(self):
        settings = CascadeSettings()

        assert settings.ids_attribute_suffix == "_ids"
        assert settings.require_explicit_detach_policy is True
        assert settings.warn_on_ambiguous_source is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("YCASCADE_CASCADE_REQUIRE_EXPLICIT_DETACH_POLICY", "false")
        monkeypatch.setenv("YCASCADE_CASCADE_IDS_ATTRIBUTE_SUFFIX", "_id_list")

        settings = CascadeSettings()

        assert settings.require_explicit_detach_policy is False
        assert settings.ids_attribute_suffix == "_id_list"

    def test_user_stamp_defaults(self):
        settings = UserStampSettings()

        assert settings.enabled is True
        assert settings.created_by_column == "created_by_id"
        assert settings.updated_by_column == "updated_by_id"
        assert settings.deleted_by_column == "deleted_by_id"

    def test_app_settings_nested(self):
        settings = AppSettings(cascade={"warn_on_ambiguous_source": False})

        assert settings.cascade.warn_on_ambiguous_source is False
        assert settings.user_stamp.enabled is True


class TestGlobalSettings:
    """进程级配置"""

    def test_lazy_default(self):
        assert get_cascade_settings() is get_cascade_settings()
        assert get_cascade_settings().ids_attribute_suffix == "_ids"

    def test_configure_and_reset(self):
        custom = CascadeSettings(warn_on_ambiguous_source=False)
        stamp = UserStampSettings(enabled=False)

        configure_cascade(custom, stamp)

        assert get_cascade_settings() is custom
        assert get_user_stamp_settings() is stamp

        reset_cascade_settings()

        assert get_cascade_settings() is not custom
        assert get_user_stamp_settings().enabled is True

    def test_configure_only_one_part(self):
        stamp = UserStampSettings(enabled=False)
        configure_cascade(user_stamp=stamp)

        assert get_user_stamp_settings() is stamp
        assert get_cascade_settings().require_explicit_detach_policy is True
