"""RSS 2.0 feed assembly and serialization."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime
from typing import List
from urllib.parse import quote, urljoin

from .errors import BuildError

FEED_FILENAME = 'rss.xml'


def rfc822_date(value: datetime) -> str:
    """Format an aware UTC datetime for RSS (RFC 822, GMT)."""
    return format_datetime(value, usegmt=True)


def resolve_post_url(base_url: str, slug: str) -> str:
    """
    Resolve a post slug against the site base URL.

    The slug is treated as a relative reference, so a base of
    ``https://example.com/blog/`` gives ``https://example.com/blog/<slug>``
    while ``https://example.com/blog`` gives ``https://example.com/<slug>``.
    """
    try:
        return urljoin(base_url, quote(slug))
    except ValueError as e:
        raise BuildError(f"Error parsing post URL for {slug!r}: {e}") from e


@dataclass
class FeedItem:
    title: str
    description: str
    link: str
    author: str
    category: str
    pub_date: datetime


@dataclass
class Feed:
    """A single-channel RSS feed."""
    title: str
    description: str
    link: str
    items: List[FeedItem] = field(default_factory=list)

    def append_item(self, item: FeedItem) -> None:
        self.items.append(item)

    def to_element(self) -> ET.Element:
        rss = ET.Element('rss', version='2.0')
        channel = ET.SubElement(rss, 'channel')
        ET.SubElement(channel, 'title').text = self.title
        ET.SubElement(channel, 'link').text = self.link
        ET.SubElement(channel, 'description').text = self.description
        # Newest item date rather than wall clock, so rebuilds are byte-identical
        if self.items:
            newest = max(item.pub_date for item in self.items)
            ET.SubElement(channel, 'lastBuildDate').text = rfc822_date(newest)

        for item in self.items:
            node = ET.SubElement(channel, 'item')
            ET.SubElement(node, 'title').text = item.title
            ET.SubElement(node, 'link').text = item.link
            ET.SubElement(node, 'description').text = item.description
            if item.author:
                ET.SubElement(node, 'author').text = item.author
            if item.category:
                ET.SubElement(node, 'category').text = item.category
            ET.SubElement(node, 'guid', isPermaLink='true').text = item.link
            ET.SubElement(node, 'pubDate').text = rfc822_date(item.pub_date)
        return rss

    def to_xml(self) -> bytes:
        """Serialize the feed as a UTF-8 XML document."""
        rss = self.to_element()
        ET.indent(rss)
        return ET.tostring(rss, encoding='utf-8', xml_declaration=True) + b'\n'

    def write_to_file(self, path: str) -> None:
        """
        Write the feed to `path`.

        Raises:
            BuildError: if the file cannot be written
        """
        try:
            with open(path, 'wb') as f:
                f.write(self.to_xml())
        except OSError as e:
            raise BuildError(f"Error writing feed {path}: {e}") from e


def build_feed(config, recent) -> Feed:
    """
    Build the site feed from the recent posts, keeping their order.

    Args:
        config: the site Config
        recent: posts already sorted newest first
    """
    feed = Feed(title=config.site_name, description=config.slogan, link=config.base_url)
    for post in recent:
        feed.append_item(FeedItem(
            title=post.title,
            description=post.description,
            link=resolve_post_url(config.base_url, post.slug),
            author=post.author,
            category='',
            pub_date=post.publish_date,
        ))
    return feed
