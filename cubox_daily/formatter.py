"""
Rendering of Cubox cards into daily note entries.

Each card is classified into one variant and rendered by its own coroutine:
- image: the first image in the card content is downloaded into the vault
  and embedded by local path
- link: the configured link template is filled with title and url
- text: the card content is used verbatim
"""

from __future__ import annotations

from pathlib import PurePosixPath
import re
from typing import Protocol
from urllib.parse import quote, urlparse

from .core.errors import EmptyContent, EmptyTemplate, InvalidImageUrl, NoImageFound, NotAFolder
from .core.types import Article, EntryVariant, classify
from .output.vault import EntryType, Vault, join_path, normalize_path

_MARKDOWN_IMAGE_RE = re.compile(r"!\[[^\]]*]\(([^)]+)\)")
_BARE_IMAGE_URL_RE = re.compile(r"https?://[^\s)]+\.(png|jpe?g|gif|webp)", re.IGNORECASE)
DEFAULT_IMAGE_EXTENSION = ".jpg"

# Characters encodeURIComponent leaves alone besides the alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class ContentSource(Protocol):
    async def get_article_content(self, article_id: str) -> str | None: ...

    async def download(self, url: str) -> bytes: ...


def extract_first_image_url(content: str) -> str:
    """Return the first image referenced by Markdown content.

    A Markdown image link wins; otherwise the first bare image URL.

    Raises:
        NoImageFound: If the content references no image
    """
    match = _MARKDOWN_IMAGE_RE.search(content)
    if match and match.group(1):
        return match.group(1)
    url_match = _BARE_IMAGE_URL_RE.search(content)
    if url_match:
        return url_match.group(0)
    raise NoImageFound("Cubox image content does not include an image URL yet.")


def encode_vault_path(path: str) -> str:
    """Percent-encode each segment of a vault path for a Markdown link."""
    return "/".join(quote(segment, safe=_URI_COMPONENT_SAFE) for segment in path.split("/"))


def image_extension(url: str) -> str:
    """Return the file extension of an image URL, defaulting to .jpg.

    Raises:
        InvalidImageUrl: If the value is not an absolute URL or has a bad port
    """
    try:
        parsed = urlparse(url)
        # port is only validated on access
        parsed.port
    except ValueError as exc:
        raise InvalidImageUrl(f"Invalid image URL: {url}") from exc
    if not parsed.scheme or not parsed.netloc:
        raise InvalidImageUrl(f"Invalid image URL: {url}")
    return PurePosixPath(parsed.path).suffix or DEFAULT_IMAGE_EXTENSION


def render_link_template(template: str, article: Article) -> str:
    """Fill {{title}} and {{url}} by plain substitution.

    Raises:
        EmptyTemplate: If the template is blank
    """
    if not template.strip():
        raise EmptyTemplate("Link template is empty.")
    return template.replace("{{title}}", article.title or "").replace("{{url}}", article.url or "")


class EntryFormatter:
    """Turns articles into note entries, downloading images as needed."""

    def __init__(
        self,
        source: ContentSource,
        vault: Vault,
        link_template: str,
        image_folder: str = "",
        image_width: int = 0,
    ):
        self.source = source
        self.vault = vault
        self.link_template = link_template
        self.image_folder = image_folder
        self.image_width = image_width

    async def format(self, article: Article) -> str:
        variant = classify(article)
        if variant is EntryVariant.IMAGE:
            return await self.format_image(article)
        if variant is EntryVariant.LINK:
            return self.format_link(article)
        return await self.format_text(article)

    async def format_image(self, article: Article) -> str:
        content = await self.source.get_article_content(article.id)
        if not content:
            raise EmptyContent(f"Cubox image entry {article.id} returned empty content.")

        image_url = extract_first_image_url(content)
        local_path = await self.download_image(image_url, article.id)
        width_token = f"|{self.image_width}" if self.image_width > 0 else ""
        return f"![{width_token}]({encode_vault_path(local_path)})"

    def format_link(self, article: Article) -> str:
        return render_link_template(self.link_template, article)

    async def format_text(self, article: Article) -> str:
        content = await self.source.get_article_content(article.id)
        if not content:
            raise EmptyContent(f"Cubox entry {article.id} returned empty content.")
        return content

    async def download_image(self, image_url: str, article_id: str) -> str:
        """Save an image under a stable, id-based vault path.

        Returns:
            Vault-relative path of the image; an existing file is reused
            without downloading again
        """
        folder = normalize_path(self.image_folder)
        self._ensure_folder(folder)

        extension = image_extension(image_url)
        file_path = join_path(folder, f"{article_id}{extension}")
        if self.vault.get_entry(file_path) is EntryType.FILE:
            return file_path

        data = await self.source.download(image_url)
        self.vault.create_binary(file_path, data)
        return file_path

    def _ensure_folder(self, folder: str) -> None:
        if not folder:
            return
        entry = self.vault.get_entry(folder)
        if entry is None:
            self.vault.create_folder(folder)
            return
        if entry is not EntryType.FOLDER:
            raise NotAFolder(f"Image folder path is not a folder: {folder}")
