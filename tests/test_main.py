import os
import unittest
from pathlib import Path
from unittest import mock

from token_variants.domain import AlgorithmSettings
from token_variants.main import (
    _mapping_overrides,
    _parse_api_keys,
    _search_algorithm,
    build_parser,
    load_app_config,
)


class ConfigTests(unittest.TestCase):
    def test_parse_api_keys(self):
        self.assertEqual(
            _parse_api_keys(" abc=key1 , def = key2,broken,=nokey,ghi="),
            {"abc": "key1", "def": "key2"},
        )

    def test_load_app_config_from_environment(self):
        env = {
            "DB_PATH": "/tmp/tv.db",
            "COMPENDIUM_PATH": "packs.yaml",
            "FORGE_API_KEYS": "abc=key1",
            "CAN_MODIFY_SETTINGS": "false",
            "IMAGE_ALLOWED_HOSTS": "Assets.Forge-VTT.com, example.com",
            "IMAGE_MAX_BYTES": "1000",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            config = load_app_config()

        self.assertEqual(config.db_path, "/tmp/tv.db")
        self.assertEqual(config.settings_path, "token-variants.yaml")
        self.assertEqual(config.compendium_path, "packs.yaml")
        self.assertIsNone(config.data_root)
        self.assertEqual(config.forge_api_keys, {"abc": "key1"})
        self.assertFalse(config.can_modify_settings)
        self.assertEqual(config.image_allowed_hosts, {"assets.forge-vtt.com", "example.com"})
        self.assertEqual(config.max_image_size_bytes, 1000)

    def test_defaults(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            config = load_app_config()

        self.assertEqual(config.db_path, "token-variants.db")
        self.assertTrue(config.can_modify_settings)
        self.assertIsNone(config.image_allowed_hosts)
        self.assertIsNone(config.compendium_path)


class ParserTests(unittest.TestCase):
    def setUp(self):
        self.parser = build_parser()

    def test_search_mode_flags(self):
        default = AlgorithmSettings(fuzzy_threshold=0.3)

        exact = _search_algorithm(self.parser.parse_args(["search", "Goblin", "--exact"]), default)
        partial = _search_algorithm(self.parser.parse_args(["search", "Goblin", "--partial"]), default)
        tuned = _search_algorithm(
            self.parser.parse_args(["search", "Goblin", "--threshold", "0.6", "--limit", "5"]),
            default,
        )

        self.assertEqual((exact.exact, exact.fuzzy), (True, False))
        self.assertEqual((partial.exact, partial.fuzzy), (False, False))
        self.assertEqual((tuned.fuzzy_threshold, tuned.fuzzy_limit), (0.6, 5))

    def test_exclusive_modes(self):
        with self.assertRaises(SystemExit):
            self.parser.parse_args(["search", "Goblin", "--exact", "--fuzzy"])

    def test_map_flags(self):
        args = self.parser.parse_args(
            ["map", "world.monsters", "--auto-apply", "--diff-images", "--hide-images", "--preview-dir", "out"]
        )

        overrides = _mapping_overrides(args)

        self.assertEqual(overrides["compendium"], "world.monsters")
        self.assertTrue(overrides["auto_apply"])
        self.assertTrue(overrides["diff_images"])
        self.assertFalse(overrides["show_images"])
        self.assertTrue(overrides["auto_display_art_select"])
        self.assertEqual(args.preview_dir, Path("out"))

    def test_token_config_commands(self):
        args = self.parser.parse_args(["token-config", "set", "tokens/orc.png", '{"light.dim": 10}'])

        self.assertEqual((args.command, args.action, args.img_src), ("token-config", "set", "tokens/orc.png"))
        self.assertIsNone(args.name)


if __name__ == "__main__":
    unittest.main()
