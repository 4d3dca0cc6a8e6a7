import unittest

from token_variants.application.search_paths import SearchPathResolver
from token_variants.domain import SearchPath, SearchType, parse_search_paths, split_forge_path
from token_variants.infrastructure.sources import ForgeImageSource, ForgeListing

FORGE = "https://assets.forge-vtt.com/abc123/"


class ParseSearchPathsTests(unittest.TestCase):
    def test_sorts_entries_by_kind(self):
        paths = parse_search_paths(
            [
                "tokens/",
                "s3:my-bucket:art/tokens",
                {"text": "portraits", "cache": False, "types": ["portrait"]},
                f"{FORGE}tokens",
            ],
            forge_api_keys={"abc123": "secret"},
        )

        self.assertEqual(
            paths.data,
            [
                SearchPath(text="tokens/"),
                SearchPath(text="portraits", cache=False, types=frozenset({SearchType.PORTRAIT})),
            ],
        )
        self.assertEqual(paths.s3, {"my-bucket": [SearchPath(text="art/tokens")]})
        self.assertEqual(list(paths.forge), ["abc123"])
        user = paths.forge["abc123"]
        self.assertEqual(user.api_key, "secret")
        self.assertEqual(user.paths, (SearchPath(text=f"{FORGE}tokens"),))

    def test_blank_and_invalid_entries_are_dropped(self):
        with self.assertLogs("token_variants.domain.search_paths", level="WARNING") as logs:
            paths = parse_search_paths(["", "   ", {"text": ""}, "s3::orphan", FORGE])

        self.assertTrue(paths.is_empty())
        self.assertEqual(len(logs.records), 2)

    def test_empty_types_list_is_kept(self):
        paths = parse_search_paths([{"text": "hidden", "types": []}])

        self.assertEqual(paths.data, [SearchPath(text="hidden", types=frozenset())])

    def test_cache_flag_must_be_boolean(self):
        with self.assertRaisesRegex(ValueError, "cache must be true or false"):
            parse_search_paths([{"text": "tokens", "cache": "false"}])

    def test_nested_lists_are_flattened(self):
        paths = parse_search_paths([["a", ["b"]], "c"])

        self.assertEqual([path.text for path in paths.data], ["a", "b", "c"])

    def test_forge_user_without_key(self):
        paths = parse_search_paths([f"{FORGE}tokens"])

        self.assertIsNone(paths.forge["abc123"].api_key)

    def test_both_type_expands_to_portrait_and_token(self):
        paths = parse_search_paths([{"text": "art", "types": "both"}])

        self.assertEqual(paths.data[0].types, frozenset({SearchType.PORTRAIT, SearchType.TOKEN}))

    def test_split_forge_path(self):
        self.assertEqual(split_forge_path(f"{FORGE}tokens/goblins"), (FORGE, "tokens/goblins"))
        self.assertIsNone(split_forge_path(FORGE))
        self.assertIsNone(split_forge_path("tokens/goblins"))


class FakeForgeClient:
    def __init__(self, listings: dict[str, ForgeListing]):
        self.listings = listings
        self.calls: list[tuple[str, str | None]] = []

    async def browse(self, directory: str, *, api_key: str | None):
        self.calls.append((directory, api_key))
        if not api_key:
            return None
        return self.listings.get(directory)


class FakeForgePathsRepo:
    def __init__(self, paths: list[str] | None = None):
        self.paths = list(paths or [])
        self.saved: list[list[str]] = []

    async def list_paths(self) -> list[str]:
        return list(self.paths)

    async def save_paths(self, paths):
        self.paths = list(paths)
        self.saved.append(list(paths))


def make_client() -> FakeForgeClient:
    return FakeForgeClient(
        {
            "tokens": ForgeListing(target="tokens", files=(), dirs=("tokens/goblins", "tokens/orcs")),
            "tokens/goblins": ForgeListing(target="tokens/goblins", files=(), dirs=()),
            "tokens/orcs": ForgeListing(target="tokens/orcs", files=(), dirs=("tokens",)),
        }
    )


class SearchPathResolverTests(unittest.IsolatedAsyncioTestCase):
    async def test_walks_folders_and_persists_new_ones(self):
        repo = FakeForgePathsRepo([f"{FORGE}old/*"])
        client = make_client()
        resolver = SearchPathResolver(client=client, forge_paths=repo)
        configured = parse_search_paths(["local", f"{FORGE}tokens"], forge_api_keys={"abc123": "secret"})

        resolved = await resolver.resolve(configured)

        expected = [
            f"{FORGE}old/*",
            f"{FORGE}tokens/*",
            f"{FORGE}tokens/goblins/*",
            f"{FORGE}tokens/orcs/*",
        ]
        self.assertEqual(repo.saved, [expected])
        self.assertEqual([path.text for path in resolved.forge["abc123"].paths], expected)
        self.assertEqual(resolved.forge["abc123"].api_key, "secret")
        self.assertEqual(resolved.data, [SearchPath(text="local")])
        self.assertEqual([call[0] for call in client.calls], ["tokens", "tokens/goblins", "tokens/orcs"])

    async def test_skips_saving_without_permission(self):
        repo = FakeForgePathsRepo()
        resolver = SearchPathResolver(client=make_client(), forge_paths=repo, can_modify_settings=False)
        configured = parse_search_paths([f"{FORGE}tokens"], forge_api_keys={"abc123": "secret"})

        resolved = await resolver.resolve(configured)

        self.assertEqual(repo.saved, [])
        self.assertEqual(len(resolved.forge["abc123"].paths), 3)

    async def test_unchanged_list_is_not_saved_again(self):
        repo = FakeForgePathsRepo([f"{FORGE}tokens/*", f"{FORGE}tokens/goblins/*", f"{FORGE}tokens/orcs/*"])
        resolver = SearchPathResolver(client=make_client(), forge_paths=repo)
        configured = parse_search_paths([f"{FORGE}tokens"], forge_api_keys={"abc123": "secret"})

        await resolver.resolve(configured)

        self.assertEqual(repo.saved, [])

    async def test_user_without_key_is_not_browsed(self):
        repo = FakeForgePathsRepo()
        client = make_client()
        resolver = SearchPathResolver(client=client, forge_paths=repo)
        configured = parse_search_paths([f"{FORGE}tokens"])

        with self.assertLogs("token_variants.application.search_paths", level="WARNING"):
            resolved = await resolver.resolve(configured)

        self.assertEqual(client.calls, [])
        self.assertEqual(resolved.forge, {})


class ForgeImageSourceTests(unittest.IsolatedAsyncioTestCase):
    async def test_lists_media_files_of_a_folder(self):
        client = FakeForgeClient(
            {
                "tokens": ForgeListing(
                    target="tokens",
                    files=("tokens/goblin.png", f"{FORGE}tokens/orc.webp", "tokens/notes.txt"),
                    dirs=(),
                )
            }
        )
        source = ForgeImageSource(client, {"abc123": "secret"})

        images = await source.list_images(SearchPath(text=f"{FORGE}tokens/*"))

        self.assertEqual(
            [(image.path, image.name, image.source) for image in images],
            [
                (f"{FORGE}tokens/goblin.png", "goblin", "forge:abc123"),
                (f"{FORGE}tokens/orc.webp", "orc", "forge:abc123"),
            ],
        )
        self.assertEqual(client.calls, [("tokens", "secret")])


if __name__ == "__main__":
    unittest.main()
