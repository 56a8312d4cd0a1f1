"""Tests for entry rendering and the image download side effect."""

import asyncio
from pathlib import Path

import httpx
import pytest

from cubox_daily.core.errors import (
    DownloadFailed,
    EmptyContent,
    EmptyTemplate,
    InvalidImageUrl,
    NoImageFound,
    NotAFolder,
)
from cubox_daily.core.types import Article, EntryVariant, classify
from cubox_daily.fetch.client import CuboxClient
from cubox_daily.formatter import (
    EntryFormatter,
    encode_vault_path,
    extract_first_image_url,
    image_extension,
)
from cubox_daily.output.vault import Vault


class FakeSource:
    def __init__(self, contents=None, image=b"\x89PNG", status_ok=True):
        self.contents = contents or {}
        self.image = image
        self.status_ok = status_ok
        self.downloads: list[str] = []

    async def get_article_content(self, article_id):
        return self.contents.get(article_id)

    async def download(self, url):
        self.downloads.append(url)
        if not self.status_ok:
            raise DownloadFailed("Image download failed with status 404")
        return self.image


def _formatter(tmp_path: Path, source, **kwargs) -> EntryFormatter:
    options = {"link_template": "[{{title}}]({{url}})", "image_folder": "Cubox", "image_width": 0}
    options.update(kwargs)
    return EntryFormatter(source, Vault(tmp_path), **options)


def test_classify_image_before_link():
    assert classify(Article(id="1", kind="Image", url="https://x.com")) is EntryVariant.IMAGE
    assert classify(Article(id="2", kind="Article", url="http://b")) is EntryVariant.LINK
    assert classify(Article(id="3", kind="Article", url="   ")) is EntryVariant.TEXT
    assert classify(Article(id="4", kind="Memo")) is EntryVariant.TEXT


def test_image_entry_downloads_and_embeds(tmp_path: Path):
    source = FakeSource(contents={"img1": "![alt](https://x.com/a.png)"})
    formatter = _formatter(tmp_path, source)

    entry = asyncio.run(formatter.format(Article(id="img1", kind="Image")))

    assert entry == "![](Cubox/img1.png)"
    assert (tmp_path / "Cubox" / "img1.png").read_bytes() == b"\x89PNG"
    assert source.downloads == ["https://x.com/a.png"]


def test_image_entry_width_and_encoded_folder(tmp_path: Path):
    source = FakeSource(contents={"img2": "see https://cdn.example.com/p/photo.JPEG here"})
    formatter = _formatter(tmp_path, source, image_folder="My Images/", image_width=300)

    entry = asyncio.run(formatter.format(Article(id="img2", kind="Image")))

    assert entry == "![|300](My%20Images/img2.JPEG)"
    assert (tmp_path / "My Images" / "img2.JPEG").exists()


def test_image_download_skipped_when_file_exists(tmp_path: Path):
    (tmp_path / "Cubox").mkdir()
    (tmp_path / "Cubox" / "img1.png").write_bytes(b"old")
    source = FakeSource(contents={"img1": "![alt](https://x.com/a.png)"})

    entry = asyncio.run(_formatter(tmp_path, source).format(Article(id="img1", kind="Image")))

    assert entry == "![](Cubox/img1.png)"
    assert source.downloads == []
    assert (tmp_path / "Cubox" / "img1.png").read_bytes() == b"old"


def test_image_default_extension(tmp_path: Path):
    source = FakeSource(contents={"img3": "![](https://x.com/render?id=3)"})

    entry = asyncio.run(_formatter(tmp_path, source).format(Article(id="img3", kind="Image")))

    assert entry == "![](Cubox/img3.jpg)"


def test_image_folder_that_is_a_file(tmp_path: Path):
    (tmp_path / "Cubox").write_text("not a folder", encoding="utf-8")
    source = FakeSource(contents={"img1": "![alt](https://x.com/a.png)"})

    with pytest.raises(NotAFolder):
        asyncio.run(_formatter(tmp_path, source).format(Article(id="img1", kind="Image")))


def test_image_errors(tmp_path: Path):
    source = FakeSource(
        contents={"plain": "no pictures here", "relative": "![x](images/a.png)", "gone": "![](https://x.com/a.gif)"},
        status_ok=False,
    )
    formatter = _formatter(tmp_path, source)

    with pytest.raises(EmptyContent):
        asyncio.run(formatter.format(Article(id="missing", kind="Image")))
    with pytest.raises(NoImageFound):
        asyncio.run(formatter.format(Article(id="plain", kind="Image")))
    with pytest.raises(InvalidImageUrl):
        asyncio.run(formatter.format(Article(id="relative", kind="Image")))
    with pytest.raises(DownloadFailed):
        asyncio.run(formatter.format(Article(id="gone", kind="Image")))
    assert not (tmp_path / "Cubox" / "gone.gif").exists()


def test_link_entry_uses_template(tmp_path: Path):
    formatter = _formatter(tmp_path, FakeSource())

    entry = asyncio.run(formatter.format(Article(id="l1", title="A", url="http://b")))

    assert entry == "[A](http://b)"


def test_link_template_is_plain_substitution(tmp_path: Path):
    formatter = _formatter(tmp_path, FakeSource(), link_template="- {{title}} <{{url}}> {{title}} {{other}}")

    entry = formatter.format_link(Article(id="l1", title="T", url="u"))

    assert entry == "- T <u> T {{other}}"


def test_link_blank_template(tmp_path: Path):
    formatter = _formatter(tmp_path, FakeSource(), link_template="  \n ")
    with pytest.raises(EmptyTemplate):
        asyncio.run(formatter.format(Article(id="l1", title="A", url="http://b")))


def test_text_entry_is_verbatim(tmp_path: Path):
    formatter = _formatter(tmp_path, FakeSource(contents={"t1": "hello"}))

    assert asyncio.run(formatter.format(Article(id="t1", kind="Memo"))) == "hello"
    with pytest.raises(EmptyContent):
        asyncio.run(formatter.format(Article(id="t2", kind="Memo")))


def test_extract_first_image_prefers_markdown_link():
    content = "https://x.com/bare.png then ![a](https://x.com/md.webp)"
    assert extract_first_image_url(content) == "https://x.com/md.webp"


def test_image_extension_and_encoding():
    assert image_extension("https://x.com/a/b.webp?x=1") == ".webp"
    assert image_extension("https://x.com/") == ".jpg"
    assert encode_vault_path("Cubox/a b#(1).png") == "Cubox/a%20b%23(1).png"


def test_image_url_with_bad_port_fails_only_that_entry(tmp_path: Path):
    requested: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request)
        return httpx.Response(200, json={"code": 200, "data": "![pic](https://img.example.com:abc/a.png)"})

    async def _main():
        transport = httpx.MockTransport(handler)
        async with CuboxClient("cubox.pro", "secret", retries=0, transport=transport) as client:
            return await _formatter(tmp_path, client).format(Article(id="img1", kind="Image"))

    with pytest.raises(InvalidImageUrl):
        asyncio.run(_main())
    assert [r.url.path for r in requested] == ["/c/api/third-party/card/content"]
    with pytest.raises(InvalidImageUrl):
        image_extension("https://img.example.com:99999/a.png")
