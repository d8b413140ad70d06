"""
Image Fetcher

Retrieves product images for embedding. Fetching is best-effort: a missing or
broken image never fails a linesheet, it just leaves the image cell empty.
"""
import logging
import posixpath
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from ..errors import AssetFetchError

logger = logging.getLogger(__name__)

PLACEHOLDER_MARKER = "placeholder"
DEFAULT_TIMEOUT = 10.0
DEFAULT_SIZE_SUFFIX = "_200x200"
DEFAULT_MAX_WORKERS = 4


class ImageFetcher:
    """
    Downloads product images, preferring a CDN-resized variant of each URL.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT,
                 size_suffix: str = DEFAULT_SIZE_SUFFIX, max_workers: int = DEFAULT_MAX_WORKERS):
        """
        Args:
            session: requests session to reuse; a new one is created when omitted
            timeout: Per-request timeout in seconds
            size_suffix: Inserted before the file extension to request a smaller image
            max_workers: Upper bound of concurrent downloads in fetch_many
        """
        self.session = session or requests.Session()
        self.timeout = timeout
        self.size_suffix = size_suffix
        self.max_workers = max(1, int(max_workers))

    @staticmethod
    def is_placeholder(image_ref: Optional[str]) -> bool:
        if not image_ref or not str(image_ref).strip():
            return True
        return PLACEHOLDER_MARKER in urlsplit(str(image_ref).strip()).path.lower()

    def optimized_url(self, url: str) -> str:
        """
        Inserts the size suffix before the extension, keeping any query string.

        'https://cdn/x/shoe.jpg?v=3' -> 'https://cdn/x/shoe_200x200.jpg?v=3'
        """
        if not self.size_suffix:
            return url
        parts = urlsplit(url)
        root, ext = posixpath.splitext(parts.path)
        if not ext or root.endswith(self.size_suffix):
            return url
        return urlunsplit(parts._replace(path=f"{root}{self.size_suffix}{ext}"))

    def fetch(self, image_ref: Optional[str]) -> Optional[bytes]:
        """
        Returns the image bytes for ``image_ref`` or None.

        Tries the optimized URL first and falls back to the original URL once.
        Never raises.
        """
        if self.is_placeholder(image_ref):
            return None

        url = str(image_ref).strip()
        candidates = [self.optimized_url(url)]
        if candidates[0] != url:
            candidates.append(url)

        for candidate in candidates:
            try:
                return self._download(candidate)
            except AssetFetchError as e:
                logger.debug(f"Image attempt failed for {candidate}: {e}")

        logger.warning(f"Could not fetch image {url} after {len(candidates)} attempt(s)")
        return None

    def fetch_many(self, image_refs: Iterable[Optional[str]]) -> Dict[str, Optional[bytes]]:
        """
        Fetches a batch of images concurrently.

        Duplicate refs are downloaded once. Placeholders map to None without I/O.

        Returns:
            Mapping of image ref -> bytes (or None)
        """
        unique_refs = list(dict.fromkeys(ref for ref in image_refs if ref is not None))
        results: Dict[str, Optional[bytes]] = {ref: None for ref in unique_refs}
        to_fetch = [ref for ref in unique_refs if not self.is_placeholder(ref)]
        if not to_fetch:
            return results

        workers = min(self.max_workers, len(to_fetch))
        logger.debug(f"Fetching {len(to_fetch)} image(s) with {workers} worker(s)")
        with ThreadPoolExecutor(max_workers=workers) as pool:
            for ref, data in zip(to_fetch, pool.map(self.fetch, to_fetch)):
                results[ref] = data

        found = sum(1 for data in results.values() if data)
        logger.info(f"Fetched {found}/{len(to_fetch)} image(s)")
        return results

    def _download(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AssetFetchError(f"{url}: {e}") from e

        data = response.content
        if not data:
            raise AssetFetchError(f"{url}: empty response body")
        return data
