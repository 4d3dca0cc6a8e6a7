import tempfile
import unittest
from pathlib import Path

from aiohttp import web
from aiohttp.test_utils import TestServer

from token_variants.domain import SearchPath
from token_variants.infrastructure.images import CachedImageProvider, ImageDownloader
from token_variants.infrastructure.sources import ForgeAssetsClient, S3ImageSource, parse_list_objects
from token_variants.infrastructure.sources.forge import _listing_from_payload

LIST_PAGE = """<?xml version="1.0" encoding="UTF-8"?>
<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
  <Name>my-bucket</Name>
  <Prefix>art/</Prefix>
  <KeyCount>3</KeyCount>
  <IsTruncated>true</IsTruncated>
  <NextContinuationToken>page-2</NextContinuationToken>
  <Contents><Key>art/goblin.png</Key><Size>10</Size></Contents>
  <Contents><Key>art/Red Dragon.webp</Key><Size>10</Size></Contents>
  <Contents><Key>art/notes.txt</Key><Size>10</Size></Contents>
</ListBucketResult>
"""

LAST_PAGE = """<?xml version="1.0" encoding="UTF-8"?>
<ListBucketResult>
  <IsTruncated>false</IsTruncated>
  <Contents><Key>art/orc.jpg</Key></Contents>
</ListBucketResult>
"""


class ParseListObjectsTests(unittest.TestCase):
    def test_namespaced_page_with_continuation(self):
        keys, token = parse_list_objects(LIST_PAGE.encode("utf-8"))

        self.assertEqual(keys, ["art/goblin.png", "art/Red Dragon.webp", "art/notes.txt"])
        self.assertEqual(token, "page-2")

    def test_last_page_has_no_token(self):
        keys, token = parse_list_objects(LAST_PAGE)

        self.assertEqual(keys, ["art/orc.jpg"])
        self.assertIsNone(token)


class FakeS3Source(S3ImageSource):
    def __init__(self, bucket: str, pages: dict[str, list[str]]):
        super().__init__(bucket)
        self.pages = pages
        self.prefixes: list[str] = []

    async def _list_keys(self, prefix: str) -> list[str]:
        self.prefixes.append(prefix)
        return self.pages.get(prefix, [])


class S3ImageSourceTests(unittest.IsolatedAsyncioTestCase):
    async def test_lists_media_keys_as_object_urls(self):
        source = FakeS3Source("my-bucket", {"art/": ["art/goblin.png", "art/Red Dragon.webp", "art/notes.txt"]})

        images = await source.list_images(SearchPath(text="/art/"))

        self.assertEqual(source.prefixes, ["art/"])
        self.assertEqual(
            [(image.path, image.name, image.source) for image in images],
            [
                ("https://my-bucket.s3.amazonaws.com/art/goblin.png", "goblin", "s3:my-bucket"),
                ("https://my-bucket.s3.amazonaws.com/art/Red%20Dragon.webp", "Red Dragon", "s3:my-bucket"),
            ],
        )

    async def test_empty_path_lists_whole_bucket(self):
        source = FakeS3Source("my-bucket", {"": ["orc.png"]})

        images = await source.list_images(SearchPath(text=""))

        self.assertEqual([image.name for image in images], ["orc"])
        self.assertEqual(source.prefixes, [""])

    def test_custom_endpoint(self):
        source = S3ImageSource("art", endpoint="https://minio.local/{bucket}/")

        self.assertEqual(source.object_url("tokens/orc.png"), "https://minio.local/art/tokens/orc.png")


class ForgeClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_browse_without_key_makes_no_request(self):
        client = ForgeAssetsClient()
        self.addAsyncCleanup(client.close)

        self.assertIsNone(await client.browse("tokens", api_key=None))
        self.assertIsNone(client._session)

    def test_listing_from_payload(self):
        listing = _listing_from_payload(
            "tokens",
            {
                "files": [{"url": "https://assets.forge-vtt.com/abc/tokens/orc.png"}, {"key": "tokens/goblin.png"}, "tokens/wolf.png", {}],
                "dirs": ["tokens/sub/", ""],
            },
        )

        self.assertEqual(listing.target, "tokens")
        self.assertEqual(
            listing.files,
            ("https://assets.forge-vtt.com/abc/tokens/orc.png", "tokens/goblin.png", "tokens/wolf.png"),
        )
        self.assertEqual(listing.dirs, ("tokens/sub",))


class ImageDownloaderTests(unittest.TestCase):
    def test_allowed_urls(self):
        downloader = ImageDownloader(allowed_hosts={"Forge-VTT.com", "s3.amazonaws.com"})

        self.assertTrue(downloader.is_allowed_url("https://assets.forge-vtt.com/abc/orc.png"))
        self.assertTrue(downloader.is_allowed_url("https://my-bucket.s3.amazonaws.com/art/orc.png"))
        self.assertFalse(downloader.is_allowed_url("https://notforge-vtt.com/orc.png"))
        self.assertFalse(downloader.is_allowed_url("https://example.com/orc.png"))
        self.assertFalse(downloader.is_allowed_url("file:///etc/passwd"))
        self.assertFalse(downloader.is_allowed_url(""))

    def test_any_host_without_allow_list(self):
        self.assertTrue(ImageDownloader().is_allowed_url("http://example.com/orc.png"))


LARGE_BODY = bytes(range(256)) * 1200


async def _stream_image(request: web.Request) -> web.StreamResponse:
    resp = web.StreamResponse(headers={"Content-Type": "image/png"})
    await resp.prepare(request)
    for offset in range(0, len(LARGE_BODY), 16 * 1024):
        await resp.write(LARGE_BODY[offset : offset + 16 * 1024])
    await resp.write_eof()
    return resp


async def _text_page(request: web.Request) -> web.Response:
    return web.Response(text="not an image")


class ImageDownloaderFetchTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        app = web.Application()
        app.router.add_get("/orc.png", _stream_image)
        app.router.add_get("/page", _text_page)
        self.server = TestServer(app)
        await self.server.start_server()
        self.addAsyncCleanup(self.server.close)

    async def test_streamed_body_is_read_completely(self):
        downloader = ImageDownloader()
        self.addAsyncCleanup(downloader.close)

        data = await downloader.fetch(str(self.server.make_url("/orc.png")))

        self.assertEqual(data, LARGE_BODY)

    async def test_body_over_limit_is_refused(self):
        downloader = ImageDownloader(max_download_bytes=100_000)
        self.addAsyncCleanup(downloader.close)

        self.assertIsNone(await downloader.fetch(str(self.server.make_url("/orc.png"))))

    async def test_non_image_response_is_refused(self):
        downloader = ImageDownloader()
        self.addAsyncCleanup(downloader.close)

        self.assertIsNone(await downloader.fetch(str(self.server.make_url("/page"))))


class FakeDownloader:
    def __init__(self, payload: bytes | None):
        self.payload = payload
        self.calls: list[str] = []
        self.closed = False

    async def fetch(self, url: str):
        self.calls.append(url)
        return self.payload

    async def close(self):
        self.closed = True


class CachedImageProviderTests(unittest.IsolatedAsyncioTestCase):
    async def test_downloads_once_while_fresh(self):
        downloader = FakeDownloader(b"image-bytes")
        with tempfile.TemporaryDirectory() as tmp:
            provider = CachedImageProvider(downloader=downloader, cache_dir=Path(tmp))

            first = await provider.fetch("https://example.com/orc.png")
            second = await provider.fetch("https://example.com/orc.png")
            await provider.close()

        self.assertEqual(first, b"image-bytes")
        self.assertEqual(second, b"image-bytes")
        self.assertEqual(downloader.calls, ["https://example.com/orc.png"])
        self.assertTrue(downloader.closed)

    async def test_expired_entry_is_downloaded_again(self):
        downloader = FakeDownloader(b"image-bytes")
        with tempfile.TemporaryDirectory() as tmp:
            provider = CachedImageProvider(downloader=downloader, cache_dir=Path(tmp), ttl_seconds=0)

            await provider.fetch("https://example.com/orc.png")
            await provider.fetch("https://example.com/orc.png")

        self.assertEqual(len(downloader.calls), 2)

    async def test_failed_download_is_not_cached(self):
        downloader = FakeDownloader(None)
        with tempfile.TemporaryDirectory() as tmp:
            provider = CachedImageProvider(downloader=downloader, cache_dir=Path(tmp))

            self.assertIsNone(await provider.fetch("https://example.com/orc.png"))
            self.assertEqual(list(Path(tmp).iterdir()), [])

    async def test_cache_keeps_image_extension(self):
        with tempfile.TemporaryDirectory() as tmp:
            provider = CachedImageProvider(downloader=FakeDownloader(None), cache_dir=Path(tmp))

            self.assertEqual(provider.cache_path("https://example.com/art/Orc.WEBP?v=2").suffix, ".webp")
            self.assertEqual(provider.cache_path("https://example.com/art/orc").suffix, ".img")

    async def test_oldest_entries_are_pruned(self):
        downloader = FakeDownloader(b"image-bytes")
        with tempfile.TemporaryDirectory() as tmp:
            provider = CachedImageProvider(downloader=downloader, cache_dir=Path(tmp), max_entries=2)

            for name in ("a", "b", "c"):
                await provider.fetch(f"https://example.com/{name}.png")

            self.assertLessEqual(len(list(Path(tmp).iterdir())), 2)


if __name__ == "__main__":
    unittest.main()
