"""Tests for RSS feed assembly."""

import pytest
import os
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire_pkg.errors import BuildError
from quire_pkg.feed import Feed, FeedItem, build_feed, resolve_post_url, rfc822_date
from quire_pkg.posts import Post
from quire_pkg.settings import Config


def make_post(slug, day, author=''):
    return Post(
        slug=slug,
        title=f'Title {slug}',
        description=f'About {slug}',
        author=author,
        publish_date=datetime(2023, 3, day, tzinfo=timezone.utc),
        content='',
        source=f'{slug}.md',
    )


class TestResolvePostUrl:
    """Test cases for item link resolution."""

    @pytest.mark.parametrize('base_url, slug, expected', [
        ('https://example.com', 'post', 'https://example.com/post'),
        ('https://example.com/', 'post', 'https://example.com/post'),
        ('https://example.com/blog/', 'post', 'https://example.com/blog/post'),
        ('https://example.com/blog', 'post', 'https://example.com/post'),
        ('https://example.com/blog/index.html', 'post', 'https://example.com/blog/post'),
        ('https://example.com/', 'two words', 'https://example.com/two%20words'),
        ('https://example.com/', 'a:b', 'https://example.com/a%3Ab'),
    ])
    def test_relative_resolution(self, base_url, slug, expected):
        assert resolve_post_url(base_url, slug) == expected

    def test_unparseable_base(self):
        with pytest.raises(BuildError, match='Error parsing post URL'):
            resolve_post_url('http://[::1/', 'post')


class TestFeed:
    """Test cases for Feed serialization."""

    def test_rfc822_date(self):
        assert rfc822_date(datetime(2023, 3, 1, tzinfo=timezone.utc)) == 'Wed, 01 Mar 2023 00:00:00 GMT'

    def test_build_feed_keeps_order(self):
        config = Config('Site', 'Slogan', 'https://example.com/', 5)
        recent = [make_post('newer', 2, author='Jane'), make_post('older', 1)]

        feed = build_feed(config, recent)

        assert feed.title == 'Site'
        assert feed.description == 'Slogan'
        assert feed.link == 'https://example.com/'
        assert [item.link for item in feed.items] == [
            'https://example.com/newer',
            'https://example.com/older',
        ]
        assert all(item.category == '' for item in feed.items)

    def test_to_xml(self):
        config = Config('Site & Co', 'Slogan', 'https://example.com/', 5)
        feed = build_feed(config, [make_post('newer', 2, author='Jane'), make_post('older', 1)])

        root = ET.fromstring(feed.to_xml())

        assert root.tag == 'rss'
        assert root.get('version') == '2.0'
        channel = root.find('channel')
        assert channel.findtext('title') == 'Site & Co'
        assert channel.findtext('lastBuildDate') == 'Thu, 02 Mar 2023 00:00:00 GMT'

        items = channel.findall('item')
        assert [i.findtext('title') for i in items] == ['Title newer', 'Title older']
        assert items[0].findtext('author') == 'Jane'
        assert items[1].find('author') is None
        assert items[0].find('category') is None
        assert items[0].findtext('guid') == 'https://example.com/newer'
        assert items[0].findtext('pubDate') == 'Thu, 02 Mar 2023 00:00:00 GMT'

    def test_empty_feed(self):
        feed = Feed(title='Site', description='Slogan', link='https://example.com/')

        channel = ET.fromstring(feed.to_xml()).find('channel')

        assert channel.findall('item') == []
        assert channel.find('lastBuildDate') is None

    def test_append_item(self):
        feed = Feed('t', 'd', 'l')
        item = FeedItem('title', 'desc', 'https://example.com/x', '', '', datetime(2023, 1, 1, tzinfo=timezone.utc))
        feed.append_item(item)
        assert feed.items == [item]

    def test_write_failure_is_fatal(self, temp_dir):
        feed = Feed('t', 'd', 'l')
        with pytest.raises(BuildError, match='Error writing feed'):
            feed.write_to_file(os.path.join(temp_dir, 'missing', 'rss.xml'))
