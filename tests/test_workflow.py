import tempfile
import unittest
from pathlib import Path
from typing import Optional

from PIL import Image

from token_variants.application.helpers.art_preview import ArtPreviewService
from token_variants.application.presenters import ReportPresenter
from token_variants.application.workflow import TokenVariantsWorkflow
from token_variants.domain import (
    AlgorithmSettings,
    ArtSelectEntry,
    ArtSelectRequest,
    ImageEntry,
    ImageMatch,
    MappingOptions,
    SearchPath,
    SearchPaths,
    SearchType,
    SelectionAction,
    accepts,
)
from token_variants.domain.mapping import MappingReport
from token_variants.domain.search import ImageSearchService
from token_variants.domain.token_config import TokenConfigService

IMAGES = [
    ImageEntry(path="tokens/goblin.png", name="goblin", source="data"),
    ImageEntry(path="tokens/goblin-boss.png", name="goblin-boss", source="data"),
]


class FakeCatalog:
    def __init__(self):
        self.cache_calls = 0

    async def list_images(self, search_type: SearchType):
        return [image for image in IMAGES if accepts(image.types, search_type)]

    async def cache_images(self) -> int:
        self.cache_calls += 1
        return len(IMAGES)

    async def search_paths(self) -> SearchPaths:
        return SearchPaths(data=[SearchPath(text="tokens")])


class FakeTokenConfigRepo:
    def __init__(self):
        self.configs: dict[tuple[str, str], dict] = {}

    async def get(self, img_src, img_name):
        return self.configs.get((img_src, img_name))

    async def save(self, img_src, img_name, config):
        self.configs[(img_src, img_name)] = dict(config)

    async def delete(self, img_src, img_name):
        return self.configs.pop((img_src, img_name), None) is not None

    async def list_all(self):
        return [(src, name, config) for (src, name), config in sorted(self.configs.items())]


class FakeProvider:
    async def fetch(self, url: str) -> Optional[bytes]:
        return None

    async def close(self) -> None:
        return None


class FakeMapper:
    def __init__(self, saved: MappingOptions | None = None):
        self.saved = saved
        self.submitted: list[MappingOptions] = []

    async def saved_options(self):
        return self.saved

    async def submit(self, options: MappingOptions) -> MappingReport:
        self.submitted.append(options)
        request = ArtSelectRequest(
            search="Goblin",
            search_type=SearchType.BOTH,
            action=SelectionAction.BOTH,
            compendium=options.compendium,
            actor_id="a1",
            image1="portraits/goblin-old.png",
        )
        return MappingReport(
            compendium=options.compendium,
            processed=1,
            art_select=[
                ArtSelectEntry(
                    request=request,
                    matches={"goblin": [ImageMatch(path="tokens/goblin.png", name="goblin")]},
                )
            ],
        )


class TokenVariantsWorkflowTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.catalog = FakeCatalog()
        self.algorithm = AlgorithmSettings(fuzzy_threshold=0.5)
        self.config_repo = FakeTokenConfigRepo()
        self.mapper = FakeMapper(MappingOptions(compendium="world.old", missing_only=True))
        self.workflow = TokenVariantsWorkflow(
            catalog=self.catalog,
            search_service=ImageSearchService(self.catalog, algorithm=self.algorithm),
            token_configs=TokenConfigService(self.config_repo),
            preview=ArtPreviewService(image_provider=FakeProvider(), height=40),
            presenter=ReportPresenter(),
            mapper=self.mapper,
        )

    async def test_cache(self):
        self.assertEqual(await self.workflow.cache(), "Cached 2 images.")
        self.assertEqual(self.catalog.cache_calls, 1)

    async def test_search_reports_mode(self):
        text = await self.workflow.search(
            "Goblin",
            search_type=SearchType.TOKEN,
            algorithm=AlgorithmSettings(exact=True, fuzzy=False),
        )

        self.assertIn('Search "Goblin" (token, exact)', text)
        self.assertIn("[goblin] 1 match", text)
        self.assertNotIn("goblin-boss", text)

    async def test_search_defaults_to_service_algorithm(self):
        text = await self.workflow.search("Goblin")

        self.assertIn("(both, fuzzy)", text)
        self.assertIn("tokens/goblin-boss.png", text)

    async def test_search_paths(self):
        text = await self.workflow.search_paths()

        self.assertIn("Local paths:\n  tokens", text)

    async def test_map_merges_saved_options_and_writes_previews(self):
        with tempfile.TemporaryDirectory() as tmp:
            preview_dir = Path(tmp) / "previews"

            text = await self.workflow.map_compendium(
                {"compendium": "world.monsters", "auto_apply": False},
                preview_dir=preview_dir,
            )

            previews = sorted(path.name for path in preview_dir.iterdir())
            with Image.open(preview_dir / previews[0]) as sheet:
                self.assertEqual(sheet.height, 40)

        options = self.mapper.submitted[0]
        self.assertEqual(options.compendium, "world.monsters")
        self.assertTrue(options.missing_only)
        self.assertEqual(options.algorithm, self.algorithm)
        self.assertEqual(previews, ["001-a1.jpg"])
        self.assertIn('Mapped "world.monsters"', text)

    async def test_map_without_compendium_file(self):
        self.workflow.mapper = None

        with self.assertRaisesRegex(RuntimeError, "COMPENDIUM_PATH"):
            await self.workflow.map_compendium({"compendium": "world.monsters"})

    async def test_token_config_commands(self):
        self.assertEqual(
            await self.workflow.save_token_config("tokens/orc.png", "orc", {"light": {"dim": 10}, "img": "x.png"}),
            "Stored 1 fields for orc.",
        )
        self.assertIn("light.dim = 10", await self.workflow.list_token_configs())
        self.assertEqual(
            await self.workflow.save_token_config("tokens/orc.png", "orc", {"img": "x.png"}),
            "No fields to store; token config for orc removed.",
        )
        self.assertEqual(
            await self.workflow.remove_token_config("tokens/orc.png", "orc"),
            "No token config stored for orc.",
        )


if __name__ == "__main__":
    unittest.main()
