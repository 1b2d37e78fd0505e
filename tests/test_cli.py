import os
import tempfile
import unittest
from unittest.mock import patch

from clickhouse_monitor.scripts.monitor_clickhouse import load_settings, main, parse_args
from clickhouse_monitor.utils.errors import ConfigurationError


class TestLoadSettings(unittest.TestCase):
    def write_config(self, text):
        fd, path = tempfile.mkstemp(suffix=".yaml")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        self.addCleanup(os.remove, path)
        return path

    def test_cli_flags_override_yaml(self):
        path = self.write_config("sample_period_s: 0.5\noutput_dir: charts\nfile_prefix: prod\n")
        args = parse_args(["clickhouse://localhost", "--config", path, "--period", "1.0"])
        data = load_settings(args)
        self.assertEqual(data["dsn"], "clickhouse://localhost")
        self.assertEqual(data["sample_period_s"], 1.0)
        self.assertEqual(data["output_dir"], "charts")
        self.assertEqual(data["file_prefix"], "prod")

    def test_dsn_from_yaml_then_environment(self):
        path = self.write_config("dsn: clickhouse://from-yaml\n")
        with patch.dict(os.environ, {"CLICKHOUSE_DSN": "clickhouse://from-env"}):
            self.assertEqual(load_settings(parse_args(["--config", path]))["dsn"], "clickhouse://from-yaml")
            self.assertEqual(load_settings(parse_args([]))["dsn"], "clickhouse://from-env")

    def test_missing_dsn(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigurationError):
                load_settings(parse_args([]))

    def test_missing_or_invalid_config_file(self):
        with self.assertRaises(ConfigurationError):
            load_settings(parse_args(["clickhouse://localhost", "--config", "/nonexistent/monitor.yaml"]))
        path = self.write_config("- just\n- a list\n")
        with self.assertRaises(ConfigurationError):
            load_settings(parse_args(["clickhouse://localhost", "--config", path]))


class TestMain(unittest.TestCase):
    def test_startup_error_exits_with_status_1(self):
        self.assertEqual(main(["mysql://localhost"]), 1)

    def test_invalid_period_exits_with_status_1(self):
        self.assertEqual(main(["clickhouse://localhost", "--period", "-1"]), 1)


if __name__ == "__main__":
    unittest.main()
