from __future__ import annotations

import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from onepage.cli import EXIT_BUILD_FAILED, EXIT_CONFIG, EXIT_OK, EXIT_STRICT, main, parse_args
from onepage.config import load_config, settings_from_args
from onepage.errors import ConfigError


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.posts = self.tmp / "posts"
        self.posts.mkdir()
        (self.posts / "2024-05-01-hello.md").write_text(
            "---\ntitle: Hello\ntags: [intro]\n---\nHi there https://example.com/hi\n", encoding="utf-8"
        )
        (self.posts / "2024-04-01-notes.txt").write_text("plain #intro #notes\n", encoding="utf-8")
        self.missing_config = str(self.tmp / "none.toml")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def run_main(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def base_args(self, output: Path) -> list[str]:
        return [
            "--config",
            self.missing_config,
            "--source",
            str(self.posts),
            "--output",
            str(output),
            "--title",
            "CLI Site",
            "--fallback-date",
            "2020-01-01",
            "--build-date",
            "2024-06-01",
        ]

    def test_builds_site(self) -> None:
        output = self.tmp / "dist"
        code, out, err = self.run_main(
            *self.base_args(output), "--share", "X:https://x.com/intent/tweet?url={URL}&text={TITLE}"
        )
        self.assertEqual(code, EXIT_OK, msg=err)
        self.assertIn("Site generated in:", out)
        page = (output / "index.html").read_text(encoding="utf-8")
        self.assertIn("CLI Site", page)
        self.assertIn("https://x.com/intent/tweet?url=https%3A%2F%2Fexample.com%2Fhi&amp;text=Hello", page)
        self.assertIn("share", err)

    def test_strict_mode_fails_on_issues(self) -> None:
        (self.posts / "bad.md").write_text("[x](local.html)\n", encoding="utf-8")
        code, _, err = self.run_main(*self.base_args(self.tmp / "dist"), "--strict")
        self.assertEqual(code, EXIT_STRICT)
        self.assertIn("local.html", err)
        self.assertTrue((self.tmp / "dist" / "index.html").exists())

    def test_no_valid_posts(self) -> None:
        empty = self.tmp / "empty"
        empty.mkdir()
        args = self.base_args(self.tmp / "dist")
        args[args.index(str(self.posts))] = str(empty)
        code, _, err = self.run_main(*args)
        self.assertEqual(code, EXIT_BUILD_FAILED)
        self.assertIn("No valid posts", err)
        self.assertFalse((self.tmp / "dist").exists())

    def test_bad_share_spec_is_config_error(self) -> None:
        code, _, err = self.run_main(*self.base_args(self.tmp / "dist"), "--share", "broken")
        self.assertEqual(code, EXIT_CONFIG)
        self.assertIn("Configuration error", err)

    def test_bad_fallback_date_is_config_error(self) -> None:
        args = self.base_args(self.tmp / "dist")
        args[args.index("2020-01-01")] = "sometime"
        code, _, _ = self.run_main(*args)
        self.assertEqual(code, EXIT_CONFIG)

    def test_config_file_supplies_defaults(self) -> None:
        config_path = self.tmp / "site.json"
        config_path.write_text(
            json.dumps(
                {
                    "title": "From Config",
                    "sources": [str(self.posts)],
                    "output": str(self.tmp / "out"),
                    "share": {"Mail": "mailto:?subject={TITLE}"},
                    "fallback_date": "2020-01-01",
                    "build_workers": 2,
                }
            ),
            encoding="utf-8",
        )
        args = parse_args(["--config", str(config_path), "--build-date", "2024-06-01"])
        settings = settings_from_args(args)
        self.assertEqual(settings.title, "From Config")
        self.assertEqual(list(settings.sources), [self.posts])
        self.assertEqual([p.name for p in settings.providers], ["Mail"])
        self.assertEqual(settings.build_workers, 2)

        overridden = settings_from_args(parse_args(["--config", str(config_path), "--title", "Flag"]))
        self.assertEqual(overridden.title, "Flag")

    def test_load_config_formats(self) -> None:
        toml_path = self.tmp / "site.toml"
        toml_path.write_text('title = "Toml"\nsources = ["a", "b"]\n', encoding="utf-8")
        self.assertEqual(load_config(toml_path), {"title": "Toml", "sources": ["a", "b"]})

        yaml_path = self.tmp / "site.yaml"
        yaml_path.write_text("title: Yaml\n", encoding="utf-8")
        self.assertEqual(load_config(yaml_path), {"title": "Yaml"})

        self.assertEqual(load_config(self.tmp / "absent.json"), {})

        bad = self.tmp / "bad.yaml"
        bad.write_text("- just\n- a list\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(bad)

    def test_unreadable_config_is_config_error(self) -> None:
        directory = self.tmp / "conf.toml"
        directory.mkdir()
        with self.assertRaises(ConfigError):
            load_config(directory)

        binary = self.tmp / "binary.json"
        binary.write_bytes(b"\xff\xfe\xfa")
        with self.assertRaises(ConfigError):
            load_config(binary)

        code, _, err = self.run_main("--config", str(directory), "--source", str(self.posts))
        self.assertEqual(code, EXIT_CONFIG)
        self.assertIn("Configuration error", err)


if __name__ == "__main__":
    unittest.main()
