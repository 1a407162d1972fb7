from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup

NO_TITLE = "No title found"
NO_DESCRIPTION = "No description found"


@dataclass
class PageMetadata:
    title: str = NO_TITLE
    meta_description: str = NO_DESCRIPTION


def extract_page_metadata(soup: Optional[BeautifulSoup]) -> PageMetadata:
    """Read the document title and meta description, falling back to placeholders."""
    if soup is None:
        return PageMetadata()

    title = NO_TITLE
    title_tag = soup.find("title")
    if title_tag is not None:
        title = title_tag.get_text().strip() or NO_TITLE

    description = NO_DESCRIPTION
    meta_tag = soup.select_one('meta[name="description"]')
    if meta_tag is not None:
        content = meta_tag.get("content")
        if content and content.strip():
            description = content.strip()

    return PageMetadata(title=title, meta_description=description)
