"""Thumbnail resolution for RSS Notion Sync."""

import re
from urllib.parse import quote, urljoin

import requests
from bs4 import BeautifulSoup

from .config import DEFAULT_IMAGE_PROXY_URL
from .logging_config import create_execution_logger

IMG_SRC_PATTERN = re.compile(
    r"""<img\b[^>]*?\bsrc\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""",
    re.IGNORECASE,
)
SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
# Characters JavaScript's encodeURIComponent leaves alone, besides -_.~
URI_COMPONENT_SAFE = "!*'()"


def extract_first_image(html: str | None) -> str | None:
    """Return the src of the first <img> tag in ``html``, if any.

    The match is purely textual; the URL is not checked for reachability.
    """
    if not html:
        return None

    match = IMG_SRC_PATTERN.search(html)
    if not match:
        return None

    src = next(group for group in match.groups() if group is not None).strip()
    return src or None


def proxy_image_url(
    image_url: str | None, proxy_base: str = DEFAULT_IMAGE_PROXY_URL
) -> str | None:
    """Rewrite an image URL so it is served through the public image proxy.

    ``http://example.com/a.png`` becomes
    ``https://images.weserv.nl/?url=example.com%2Fa.png``.
    """
    if not image_url:
        return None

    stripped = SCHEME_PATTERN.sub("", image_url)
    return f"{proxy_base}?url={quote(stripped, safe=URI_COMPONENT_SAFE)}"


class ThumbnailResolver:
    """Finds a best-effort thumbnail image for an article."""

    def __init__(
        self,
        session: requests.Session | None = None,
        proxy_base: str = DEFAULT_IMAGE_PROXY_URL,
        timeout: int = 30,
        execution_id: str | None = None,
    ):
        """Initialize ThumbnailResolver.

        Args:
            session: HTTP session used to fetch article pages
            proxy_base: Base URL of the image proxy service
            timeout: HTTP request timeout in seconds
            execution_id: Execution ID for logging context
        """
        self.proxy_base = proxy_base
        self.timeout = timeout
        self.logger = create_execution_logger("thumbnail_resolver", execution_id)
        self.session = session or requests.Session()

    def resolve(self, link: str | None, candidate: str | None = None) -> str | None:
        """Return a proxied thumbnail URL, or None when nothing was found.

        Args:
            link: Article URL, scraped only when ``candidate`` is empty
            candidate: Image already found in the entry's own content

        Returns:
            Proxied image URL or None
        """
        image_url = candidate or self.find_page_image(link)
        return proxy_image_url(image_url, self.proxy_base)

    def find_page_image(self, page_url: str | None) -> str | None:
        """Fetch an article page and pick its og:image, else its first <img>.

        Relative image URLs are resolved against the page URL.

        Never raises: any download or parsing problem yields None.
        """
        if not page_url:
            return None

        try:
            response = self.session.get(page_url, timeout=self.timeout)
            response.raise_for_status()
            soup = BeautifulSoup(response.text, "html.parser")

            meta = soup.find("meta", attrs={"property": "og:image"}) or soup.find(
                "meta", attrs={"name": "og:image"}
            )
            if meta and meta.get("content", "").strip():
                return urljoin(response.url, meta["content"].strip())

            img = soup.find("img", src=True)
            if img and img["src"].strip():
                return urljoin(response.url, img["src"].strip())
        except Exception as e:
            self.logger.debug(
                f"Could not resolve page image for {page_url}: {e}",
                link=page_url,
                error=str(e),
            )

        return None
