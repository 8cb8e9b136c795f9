import json
import os
import tempfile
import unittest

from appconfig.config.errors import ConfigFileError
from appconfig.config.store import ConfigStore, to_bool, to_int, to_string, to_string_list


class TypedConversionTests(unittest.TestCase):
    def test_to_string(self) -> None:
        self.assertEqual(to_string(None), "")
        self.assertEqual(to_string(True), "true")
        self.assertEqual(to_string(42), "42")
        self.assertEqual(to_string({"a": 1}), '{"a": 1}')

    def test_to_int(self) -> None:
        self.assertEqual(to_int("42"), 42)
        self.assertEqual(to_int(" 7 "), 7)
        self.assertEqual(to_int("0x1f"), 31)
        self.assertEqual(to_int("3.0"), 3)
        self.assertEqual(to_int("3.5"), 0)
        self.assertEqual(to_int("nope"), 0)
        self.assertEqual(to_int(True), 1)
        self.assertEqual(to_int(None), 0)

    def test_to_bool(self) -> None:
        for raw in ("1", "true", "TRUE", "t", "yes", "on"):
            self.assertTrue(to_bool(raw), raw)
        for raw in ("0", "false", "off", "", "garbage"):
            self.assertFalse(to_bool(raw), raw)
        self.assertTrue(to_bool(2))
        self.assertFalse(to_bool(None))

    def test_to_string_list(self) -> None:
        self.assertEqual(to_string_list("a b  c"), ["a", "b", "c"])
        self.assertEqual(to_string_list([1, "x"]), ["1", "x"])
        self.assertEqual(to_string_list(None), [])


class ConfigStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = os.path.join(self._tmp.name, "config.json")
        self.environ: dict[str, str] = {}
        self.store = ConfigStore(environ=self.environ)

    def _write(self, data: object) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def _read_file(self) -> dict:
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def test_precedence_override_env_file_default(self) -> None:
        self._write({"foo": "file"})
        self.store.set_config_file(self.path)
        self.store.read_config()
        self.store.set_default("foo", "default")
        self.store.automatic_env()
        self.store.set_env_prefix("app")

        self.assertEqual(self.store.get("foo"), "file")
        self.environ["APP_FOO"] = "env"
        self.assertEqual(self.store.get("foo"), "env")
        self.store.set("foo", "override")
        self.assertEqual(self.store.get("foo"), "override")

    def test_env_is_ignored_without_automatic_env(self) -> None:
        self.environ["FOO"] = "env"
        self.store.set_default("foo", "default")
        self.assertEqual(self.store.get("foo"), "default")

    def test_nested_keys_and_env_replacer(self) -> None:
        self._write({"Section": {"SubKey": "file"}})
        self.store.set_config_file(self.path)
        self.store.read_config()
        self.store.automatic_env()
        self.store.set_env_prefix("nhm")
        self.store.set_env_key_replacer(".", "_")

        self.assertEqual(self.store.env_var_name("section.subkey"), "NHM_SECTION_SUBKEY")
        self.assertEqual(self.store.get_string("section.subkey"), "file")
        self.environ["NHM_SECTION_SUBKEY"] = "env"
        self.assertEqual(self.store.get_string("SECTION.SUBKEY"), "env")
        self.assertEqual(self.store.get_string_map("section"), {"subkey": "file"})

    def test_alias_reads_and_writes_real_key(self) -> None:
        self.store.register_alias("environment", "env")
        self.store.set("environment", "prod")
        self.assertEqual(self.store.get("env"), "prod")
        self.store.set("env", "staging")
        self.assertEqual(self.store.get("environment"), "staging")

    def test_alias_env_var_binds_real_key(self) -> None:
        self.store.automatic_env()
        self.store.set_env_prefix("app")
        self.store.register_alias("environment", "env")
        self.environ["APP_ENVIRONMENT"] = "prod"
        self.assertEqual(self.store.get("env"), "prod")
        self.environ["APP_ENV"] = "dev"
        self.assertEqual(self.store.get("environment"), "dev")

    def test_empty_env_var_falls_through_to_file(self) -> None:
        self._write({"foo": "file"})
        self.store.set_config_file(self.path)
        self.store.read_config()
        self.store.automatic_env()
        self.store.set_env_prefix("nhm")
        self.environ["NHM_FOO"] = ""
        self.environ["NHM_BAR"] = ""
        self.assertEqual(self.store.get_string("foo"), "file")
        self.assertFalse(self.store.is_set("bar"))

    def test_empty_env_var_falls_through_to_alias(self) -> None:
        self.store.automatic_env()
        self.store.set_env_prefix("nhm")
        self.store.register_alias("environment", "env")
        self.environ["NHM_ENV"] = ""
        self.environ["NHM_ENVIRONMENT"] = "prod"
        self.assertEqual(self.store.get("env"), "prod")

    def test_alias_cycle_is_ignored(self) -> None:
        self.store.register_alias("a", "b")
        self.store.register_alias("b", "a")
        self.store.set("a", 1)
        self.assertEqual(self.store.get("b"), 1)

    def test_type_by_default_value(self) -> None:
        self.store.automatic_env()
        self.store.set_type_by_default_value(True)
        self.store.set_default("port", 8080)
        self.store.set_default("debug", False)
        self.environ["PORT"] = "9090"
        self.environ["DEBUG"] = "true"
        self.assertEqual(self.store.get("port"), 9090)
        self.assertIs(self.store.get("debug"), True)

    def test_is_set_ignores_defaults(self) -> None:
        self.store.set_default("foo", "x")
        self.assertFalse(self.store.is_set("foo"))
        self.store.set("foo", "y")
        self.assertTrue(self.store.is_set("foo"))

    def test_read_missing_file(self) -> None:
        self.store.set_config_file(self.path)
        with self.assertRaises(ConfigFileError) as ctx:
            self.store.read_config()
        self.assertIn(self.path, str(ctx.exception))

    def test_read_invalid_json(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")
        self.store.set_config_file(self.path)
        with self.assertRaises(ConfigFileError):
            self.store.read_config()

    def test_read_rejects_non_object(self) -> None:
        self._write([1, 2, 3])
        self.store.set_config_file(self.path)
        with self.assertRaises(ConfigFileError):
            self.store.read_config()

    def test_read_without_file_configured(self) -> None:
        with self.assertRaises(ConfigFileError):
            self.store.read_config()

    def test_write_config_persists_all_settings(self) -> None:
        self._write({"a": 1, "nested": {"b": "x"}})
        self.store.set_config_file(self.path)
        self.store.read_config()
        self.store.set_default("c", "default")
        self.store.set("nested.d", True)
        self.store.write_config()

        self.assertEqual(
            self._read_file(),
            {"a": 1, "c": "default", "nested": {"b": "x", "d": True}},
        )

    def test_write_config_uses_env_for_known_keys_only(self) -> None:
        self._write({"a": "file"})
        self.store.set_config_file(self.path)
        self.store.read_config()
        self.store.automatic_env()
        self.environ["A"] = "env"
        self.environ["SECRET"] = "hidden"
        self.store.write_config()
        self.assertEqual(self._read_file(), {"a": "env"})

    def test_write_config_unencodable_value_leaves_file(self) -> None:
        self._write({"a": 1})
        self.store.set_config_file(self.path)
        self.store.read_config()
        self.store.set("bad", object())
        with self.assertRaises(ConfigFileError):
            self.store.write_config()
        self.assertEqual(self._read_file(), {"a": 1})

    def test_watch_requires_config_file(self) -> None:
        with self.assertRaises(ConfigFileError):
            self.store.watch_config()


if __name__ == "__main__":
    unittest.main()
