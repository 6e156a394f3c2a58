import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from savepath import resolver
from savepath.config import GameConfig
from savepath.discovery import DiscoveryResult, LegendarySavePathDiscovery
from savepath.exceptions import MissingMetadataError, UnknownBackendError
from savepath.game import Backend, CloudSaveLocation, GameIdentity, GameMetadata, Platform
from savepath.library import GOGLibrary, LegendaryLibrary


def make_gog_library(game, info=None):
    library = MagicMock(spec=GOGLibrary)
    library.get_game_info.return_value = game
    library.read_info_file.return_value = info
    return library


def make_gog_game(locations, platform=Platform.LINUX, install_path="/games/Foo"):
    return GameMetadata(
        appid="1207658924",
        backend=Backend.GOG,
        install_path=install_path,
        platform=platform,
        gog_save_location=locations,
    )


class TestVariables(unittest.TestCase):
    def test_every_variable_has_a_resolver(self):
        self.assertEqual(set(resolver.VARIABLE_RESOLVERS), set(resolver.SaveFolderVariable))

    def test_variable_map_for_wine_game(self):
        variable_map = resolver.get_variable_map("/games/Foo", native=False)
        self.assertEqual(variable_map["INSTALL"], "/games/Foo")
        self.assertEqual(variable_map["APPLICATION_DATA_ROAMING"], "%APPDATA%")
        self.assertEqual(variable_map["APPLICATION_DATA_LOCAL_LOW"], "%APPDATA%\\..\\LocalLow")
        self.assertEqual(variable_map["DOCUMENTS"], "%USERPROFILE%\\Documents")

    def test_native_documents_use_host_folder(self):
        with patch("savepath.resolver.system.get_documents_dir", return_value="/home/user/Documents"):
            variable_map = resolver.get_variable_map("/games/Foo", native=True)
        self.assertEqual(variable_map["DOCUMENTS"], "/home/user/Documents")

    def test_expand_every_occurrence(self):
        variable_map = resolver.get_variable_map("/games/Foo", native=False)
        path = resolver.expand_variables("<?INSTALL?>/a/<?INSTALL?>/b", variable_map)
        self.assertEqual(path, "/games/Foo/a//games/Foo/b")
        self.assertNotIn("<?", path)

    def test_unknown_variable_is_kept(self):
        variable_map = resolver.get_variable_map("/games/Foo", native=False)
        with self.assertLogs("savepath", level="WARNING") as logs:
            path = resolver.expand_variables("<?INSTALL?>/<?STEAM_CLOUD?>/saves", variable_map)
        self.assertEqual(path, "/games/Foo/<?STEAM_CLOUD?>/saves")
        self.assertIn("STEAM_CLOUD", logs.output[0])


class TestNativePathResolver(unittest.TestCase):
    def test_expands_shell_variables(self):
        with patch.dict(os.environ, {"SAVEPATH_TEST_DIR": "/nonexistent/dir"}):
            path = resolver.NativePathResolver().resolve("$SAVEPATH_TEST_DIR/saves/../slot")
        self.assertEqual(path, "/nonexistent/dir/slot")

    def test_resolves_symlinks(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            real_dir = os.path.join(tmp_dir, "real")
            os.mkdir(real_dir)
            link = os.path.join(tmp_dir, "link")
            os.symlink(real_dir, link)
            path = resolver.NativePathResolver().resolve(link)
            self.assertEqual(path, os.path.realpath(real_dir))

    def test_keeps_path_when_realpath_fails(self):
        with patch("savepath.resolver.system.path_exists", return_value=True), patch(
            "savepath.resolver.system.resolve_symlinks", side_effect=OSError("loop")
        ):
            path = resolver.NativePathResolver().resolve("/games/Foo/saves")
        self.assertEqual(path, "/games/Foo/saves")


@patch("savepath.game.get_host_platform", return_value=Platform.LINUX)
class TestGOGSavePaths(unittest.TestCase):
    def setUp(self):
        self.config_dir = tempfile.TemporaryDirectory()
        self.game_config = GameConfig(config_dir=self.config_dir.name)

    def tearDown(self):
        self.config_dir.cleanup()

    def get_paths(self, library, already_defined=None):
        return resolver.get_default_gog_save_paths(
            "1207658924", already_defined or [], library=library, game_config=self.game_config
        )

    def test_native_install_location(self, _host):
        library = make_gog_library(make_gog_game([CloudSaveLocation("slot1", "<?INSTALL?>/saves")]))
        locations = self.get_paths(library)
        self.assertEqual(locations, [CloudSaveLocation("slot1", "/games/Foo/saves")])

    def test_default_location_is_synthesized(self, _host):
        game = make_gog_game([])
        library = make_gog_library(game, info={"clientId": "49998241234567"})
        with tempfile.TemporaryDirectory() as home, patch.dict(os.environ, {"HOME": home}):
            locations = self.get_paths(library)
            expected = os.path.join(
                home, "Library/Application Support/GOG.com/Galaxy/Applications/49998241234567/Storage"
            )
        self.assertEqual(len(locations), 1)
        self.assertEqual(locations[0].name, "__default")
        self.assertEqual(locations[0].location, expected)
        self.assertNotIn("$", locations[0].location)
        self.assertEqual(game.gog_save_location, [])

    def test_default_location_of_windows_game(self, _host):
        library = make_gog_library(make_gog_game([], platform=Platform.WINDOWS), info={"clientId": "abc"})
        with patch("savepath.resolver.get_wine_path", return_value="/prefix/drive_c/saves") as wine_path:
            locations = self.get_paths(library)
        self.assertEqual(locations, [CloudSaveLocation("__default", "/prefix/drive_c/saves")])
        self.assertEqual(
            wine_path.call_args[0][0], "%LocalAppData%/GOG.com/Galaxy/Applications/abc/Storage/Shared/Files"
        )

    def test_wine_game_uses_winepath(self, _host):
        game = make_gog_game([CloudSaveLocation("saves", "<?APPLICATION_DATA_ROAMING?>/Foo")], Platform.WINDOWS)
        with patch("savepath.resolver.get_wine_path", return_value="/pfx/AppData/Roaming/Foo") as wine_path:
            locations = self.get_paths(make_gog_library(game))
        self.assertEqual(locations, [CloudSaveLocation("saves", "/pfx/AppData/Roaming/Foo")])
        path, game_settings = wine_path.call_args[0]
        self.assertEqual(path, "%APPDATA%/Foo")
        self.assertEqual(game_settings.appid, "1207658924")

    def test_already_defined_locations_are_kept(self, _host):
        game = make_gog_game(
            [
                CloudSaveLocation("first", "<?INSTALL?>/first"),
                CloudSaveLocation("second", "<?INSTALL?>/second"),
                CloudSaveLocation("third", "<?INSTALL?>/third"),
            ]
        )
        defined = CloudSaveLocation("second", "/somewhere/else")
        already_defined = [CloudSaveLocation("third", ""), defined]
        locations = self.get_paths(make_gog_library(game), already_defined)
        self.assertEqual([location.name for location in locations], ["first", "second", "third"])
        self.assertIs(locations[1], defined)
        self.assertEqual(locations[0].location, "/games/Foo/first")
        self.assertEqual(locations[2].location, "/games/Foo/third")

    def test_unknown_variable_does_not_abort(self, _host):
        game = make_gog_game(
            [CloudSaveLocation("broken", "<?UNKNOWN?>/saves"), CloudSaveLocation("ok", "<?INSTALL?>/saves")]
        )
        locations = self.get_paths(make_gog_library(game))
        self.assertEqual(len(locations), 2)
        self.assertIn("<?UNKNOWN?>", locations[0].location)
        self.assertEqual(locations[1].location, "/games/Foo/saves")

    def test_null_location_in_store_data(self, _host):
        with tempfile.TemporaryDirectory() as store_dir:
            with open(os.path.join(store_dir, "installed.json"), "w", encoding="utf-8") as installed_file:
                json.dump(
                    {
                        "installed": [
                            "garbage",
                            {
                                "appName": "1207658924",
                                "platform": "linux",
                                "install_path": "/games/Foo",
                                "gog_save_location": [
                                    {"name": "a", "location": None},
                                    {"name": "b", "location": "<?INSTALL?>/saves"},
                                ],
                            },
                        ]
                    },
                    installed_file,
                )
            with self.assertLogs("savepath", level="WARNING"):
                locations = self.get_paths(GOGLibrary(store_dir=store_dir))
        self.assertEqual(locations, [CloudSaveLocation("a", ""), CloudSaveLocation("b", "/games/Foo/saves")])

    def test_missing_metadata(self, _host):
        for game in (None, make_gog_game(None), make_gog_game([], install_path="")):
            with self.assertLogs("savepath", level="ERROR"):
                self.assertEqual(self.get_paths(make_gog_library(game)), [])


class TestLegendarySavePath(unittest.TestCase):
    def setUp(self):
        self.config_dir = tempfile.TemporaryDirectory()
        self.game_config = GameConfig(config_dir=self.config_dir.name)

    def tearDown(self):
        self.config_dir.cleanup()

    @staticmethod
    def make_game(save_path=""):
        return GameMetadata(appid="Fortnite", backend=Backend.LEGENDARY, install_path="/games/F", save_path=save_path)

    @staticmethod
    def make_library():
        library = MagicMock(spec=LegendaryLibrary)
        library.config_dir = "/home/u/.config/legendary"
        return library

    def test_known_save_path_is_returned(self):
        library = self.make_library()
        library.get_game_info.return_value = self.make_game("/home/u/.saves/game1")
        discovery = MagicMock(spec=LegendarySavePathDiscovery)
        path = resolver.get_default_legendary_save_path("Fortnite", library, self.game_config, discovery)
        self.assertEqual(path, "/home/u/.saves/game1")
        discovery.run.assert_not_called()

    def test_failed_discovery(self):
        library = self.make_library()
        library.get_game_info.return_value = self.make_game()
        discovery = MagicMock(spec=LegendarySavePathDiscovery)
        discovery.run.return_value = DiscoveryResult.NO_CONFIRMATION
        path = resolver.get_default_legendary_save_path("Fortnite", library, self.game_config, discovery)
        self.assertEqual(path, "")
        self.assertEqual(library.get_game_info.call_count, 1)

    def test_discovered_path_is_read_back(self):
        library = self.make_library()
        library.get_game_info.side_effect = [self.make_game(), self.make_game("/home/u/.saves/new")]
        discovery = MagicMock(spec=LegendarySavePathDiscovery)
        discovery.run.return_value = DiscoveryResult.CONFIRMED
        path = resolver.get_default_legendary_save_path("Fortnite", library, self.game_config, discovery)
        self.assertEqual(path, "/home/u/.saves/new")
        library.get_game_info.assert_called_with("Fortnite", force_refresh=True)
        env = discovery.run.call_args[1]["env"]
        self.assertIn("WINEDLLOVERRIDES", env)
        self.assertEqual(env["LEGENDARY_CONFIG_PATH"], "/home/u/.config/legendary")

    def test_tool_not_persisting_path(self):
        library = self.make_library()
        library.get_game_info.side_effect = [self.make_game(), self.make_game()]
        discovery = MagicMock(spec=LegendarySavePathDiscovery)
        discovery.run.return_value = DiscoveryResult.CONFIRMED
        path = resolver.get_default_legendary_save_path("Fortnite", library, self.game_config, discovery)
        self.assertEqual(path, "")

    def test_game_not_installed(self):
        library = self.make_library()
        library.get_game_info.return_value = None
        with self.assertLogs("savepath", level="ERROR"):
            path = resolver.get_default_legendary_save_path("Fortnite", library, self.game_config)
        self.assertEqual(path, "")

    def test_with_fake_legendary(self):
        with tempfile.TemporaryDirectory() as legendary_dir:
            installed_path = os.path.join(legendary_dir, "installed.json")
            with open(installed_path, "w", encoding="utf-8") as installed_file:
                json.dump({"Fortnite": {"install_path": "/games/F", "platform": "Windows", "save_path": None}},
                          installed_file)
            script_path = os.path.join(legendary_dir, "legendary")
            with open(script_path, "w", encoding="utf-8") as script:
                script.write(
                    "#!/bin/sh\n"
                    "printf 'Save path for \"Fortnite\": /home/u/.saves/game1\\nIs this correct? [Y/n] '\n"
                    "read answer\n"
                    "if [ \"$answer\" = \"y\" ]; then\n"
                    "  printf '{\"Fortnite\": {\"install_path\": \"/games/F\", \"platform\": \"Windows\", "
                    "\"save_path\": \"/home/u/.saves/game1\"}}' > '%s'\n"
                    "fi\n" % installed_path
                )
            os.chmod(script_path, 0o755)
            library = LegendaryLibrary(config_dir=legendary_dir)
            discovery = LegendarySavePathDiscovery(legendary_path=script_path, timeout=30)
            path = resolver.get_default_legendary_save_path("Fortnite", library, self.game_config, discovery)
        self.assertEqual(path, "/home/u/.saves/game1")

    def test_fake_legendary_writes_to_library_config_dir(self):
        with tempfile.TemporaryDirectory() as legendary_dir, tempfile.TemporaryDirectory() as home:
            installed_path = os.path.join(legendary_dir, "installed.json")
            with open(installed_path, "w", encoding="utf-8") as installed_file:
                json.dump({"G": {"install_path": "/games/G", "platform": "Windows"}}, installed_file)
            script_path = os.path.join(home, "legendary")
            with open(script_path, "w", encoding="utf-8") as script:
                script.write(
                    "#!/bin/sh\n"
                    "config_dir=\"${LEGENDARY_CONFIG_PATH:-$HOME/.config/legendary}\"\n"
                    "printf 'Is this correct? [Y/n] '\n"
                    "read answer\n"
                    "mkdir -p \"$config_dir\"\n"
                    "printf '{\"G\": {\"install_path\": \"/games/G\", \"platform\": \"Windows\", "
                    "\"save_path\": \"/saves/G\"}}' > \"$config_dir/installed.json\"\n"
                )
            os.chmod(script_path, 0o755)
            library = LegendaryLibrary(config_dir=legendary_dir)
            with patch.dict(os.environ, {"HOME": home}), patch(
                "savepath.discovery.settings.LEGENDARY_PATH", script_path
            ), patch("savepath.discovery.settings.LEGENDARY_CONFIG_DIR", os.path.join(home, ".config/legendary")):
                os.environ.pop("LEGENDARY_CONFIG_PATH", None)
                path = resolver.get_default_legendary_save_path("G", library, self.game_config)
            self.assertFalse(os.path.exists(os.path.join(home, ".config", "legendary")))
        self.assertEqual(path, "/saves/G")


class TestDispatcher(unittest.TestCase):
    def test_unknown_backend(self):
        with self.assertRaises(UnknownBackendError) as context:
            resolver.get_default_save_path("appid", "steam", [])
        self.assertEqual(context.exception.backend, "steam")
        self.assertEqual(context.exception.message, "Unsupported backend: steam")

    def test_missing_game_metadata(self):
        library = MagicMock(spec=GOGLibrary)
        library.get_game_info.return_value = None
        with self.assertRaises(MissingMetadataError) as context:
            resolver.get_game_metadata(library, "123")
        self.assertEqual(context.exception.appid, "123")

    def test_routes_legendary(self):
        with patch("savepath.resolver.get_default_legendary_save_path", return_value="/saves") as strategy:
            self.assertEqual(resolver.get_default_save_path("Fortnite", "legendary", []), "/saves")
        strategy.assert_called_once_with("Fortnite")

    def test_routes_gog(self):
        already_defined = [CloudSaveLocation("a", "/a")]
        with patch("savepath.resolver.get_default_gog_save_paths", return_value=already_defined) as strategy:
            result = resolver.resolve(GameIdentity("123", Backend.GOG), already_defined)
        self.assertEqual(result, already_defined)
        strategy.assert_called_once_with("123", already_defined)
