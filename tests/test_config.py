import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from heaviside.core.config import ConfigManager, HubConfig


def clean_env(**values):
    env = {k: v for k, v in os.environ.items() if not k.startswith("HEAVISIDE_")}
    env.update(values)
    return mock.patch.dict(os.environ, env, clear=True)


class TestConfigManager(unittest.TestCase):
    """default < 配置文件 < 环境变量，且配置问题不能导致崩溃。"""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory(prefix="heaviside-config-")
        self.tmp = Path(self._tmp.name)
        self.cfg_path = self.tmp / "heaviside.json"

    def tearDown(self):
        self._tmp.cleanup()

    def load(self, **env):
        with clean_env(HEAVISIDE_CONFIG_PATH=str(self.cfg_path), **env):
            return ConfigManager().load()

    def test_missing_file_heals_with_defaults(self):
        cfg = self.load()
        self.assertEqual(cfg, HubConfig())
        self.assertEqual(cfg.default_target_origin, "*")
        self.assertTrue(self.cfg_path.exists())
        self.assertEqual(json.loads(self.cfg_path.read_text(encoding="utf-8")), HubConfig().model_dump())

    def test_file_values(self):
        self.cfg_path.write_text(
            json.dumps({"origin": "https://hub.example", "isolate_callback_errors": True, "remote": {"timeout_s": 2}}),
            encoding="utf-8",
        )
        cfg = self.load()
        self.assertEqual(cfg.origin, "https://hub.example")
        self.assertTrue(cfg.isolate_callback_errors)
        self.assertEqual(cfg.remote.timeout_s, 2.0)
        self.assertEqual(cfg.route_field, "messageKey")

    def test_env_overrides_file(self):
        self.cfg_path.write_text(json.dumps({"origin": "https://file.example"}), encoding="utf-8")
        cfg = self.load(
            HEAVISIDE_ORIGIN="https://env.example",
            HEAVISIDE_DEFAULT_TARGET_ORIGIN="https://child.example",
            HEAVISIDE_ROUTE_FIELD="route",
            HEAVISIDE_ISOLATE_CALLBACK_ERRORS="yes",
            HEAVISIDE_LOG_LEVEL="debug",
            HEAVISIDE_REMOTE_TIMEOUT_S="1.5",
        )
        self.assertEqual(cfg.origin, "https://env.example")
        self.assertEqual(cfg.default_target_origin, "https://child.example")
        self.assertEqual(cfg.route_field, "route")
        self.assertTrue(cfg.isolate_callback_errors)
        self.assertEqual(cfg.log_level, "DEBUG")
        self.assertEqual(cfg.remote.timeout_s, 1.5)

    def test_unparseable_env_number_is_ignored(self):
        cfg = self.load(HEAVISIDE_REMOTE_TIMEOUT_S="soon")
        self.assertEqual(cfg.remote.timeout_s, HubConfig().remote.timeout_s)

    def test_corrupt_file_is_backed_up(self):
        self.cfg_path.write_text("{not json", encoding="utf-8")
        cfg = self.load()
        self.assertEqual(cfg, HubConfig())
        backups = list(self.tmp.glob("heaviside.json.bad-*"))
        self.assertEqual(len(backups), 1)
        self.assertEqual(backups[0].read_text(encoding="utf-8"), "{not json")

    def test_invalid_override_keeps_other_values(self):
        self.cfg_path.write_text(
            json.dumps({"origin": "https://hub.example", "default_target_origin": "https://child.example"}),
            encoding="utf-8",
        )
        with self.assertLogs("heaviside.config", level="WARNING"):
            cfg = self.load(HEAVISIDE_LOG_LEVEL="trace", HEAVISIDE_ORIGIN="https://env.example")
        self.assertEqual(cfg.log_level, "INFO")
        self.assertEqual(cfg.origin, "https://env.example")
        self.assertEqual(cfg.default_target_origin, "https://child.example")

    def test_invalid_file_value_keeps_other_values(self):
        self.cfg_path.write_text(
            json.dumps({"log_level": "chatty", "default_target_origin": "https://child.example"}),
            encoding="utf-8",
        )
        cfg = self.load()
        self.assertEqual(cfg.log_level, "INFO")
        self.assertEqual(cfg.default_target_origin, "https://child.example")

    def test_non_object_remote_section_is_dropped(self):
        self.cfg_path.write_text(
            json.dumps({"remote": 5, "default_target_origin": "https://child.example"}),
            encoding="utf-8",
        )
        cfg = self.load(HEAVISIDE_REMOTE_TIMEOUT_S="3")
        self.assertEqual(cfg.remote.timeout_s, 3.0)
        self.assertEqual(cfg.remote.messages_path, "/v1/messages")
        self.assertEqual(cfg.default_target_origin, "https://child.example")

    def test_relative_path_is_from_repo_root(self):
        mgr = ConfigManager()
        with clean_env(HEAVISIDE_CONFIG_PATH="config/x.json"):
            self.assertEqual(mgr.resolve_path(), mgr.repo_root / "config" / "x.json")


if __name__ == "__main__":
    unittest.main(verbosity=2)
