import os
import re
import logging
from dataclasses import dataclass
from datetime import datetime, date, timezone

import mistune
import yaml

from .errors import PostParseError

FRONT_MATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)', re.DOTALL)

DATE_FORMATS = ['%Y-%m-%d %H:%M', '%b %d, %Y', '%m/%d/%Y']

REQUIRED_FIELDS = ('title', 'date')


@dataclass(frozen=True)
class Post:
    """A parsed post. Built once per source file per build."""
    slug: str
    title: str
    description: str
    author: str
    publish_date: datetime
    content: str
    source: str


def parse_date(value):
    """
    Parse a front matter date into an aware UTC datetime.

    Accepts datetime/date objects (as produced by YAML) and strings in ISO 8601
    or one of DATE_FORMATS. Naive values are taken to be UTC.

    Raises:
        ValueError: if the value cannot be interpreted as a date
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            for fmt in DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            raise ValueError(f"unrecognised date {text!r}")
    else:
        raise ValueError(f"unrecognised date {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_valid_slug(slug):
    """A slug must be usable as a bare file name in the output directory."""
    if not slug or slug in ('.', '..') or slug.startswith('.'):
        return False
    return not any(sep in slug for sep in ('/', '\\', os.sep))


class PostLoader:
    """Turns markdown files with YAML front matter into Post objects."""

    def __init__(self):
        self.logger = logging.getLogger('Quire')
        self.markdown_parser = self.create_markdown_parser()

    def create_markdown_parser(self):
        """Create a Mistune markdown parser with a custom renderer."""
        class CustomRenderer(mistune.HTMLRenderer):
            def __init__(self):
                super().__init__(escape=False)
            def block_code(self, code, info=None):
                escaped_code = mistune.escape(code)
                return '<pre style="white-space: pre-wrap;"><code>{}</code></pre>'.format(escaped_code)
        return mistune.create_markdown(
            renderer=CustomRenderer(),
            plugins=['table', 'task_lists', 'strikethrough']
        )

    def markdown_filter(self, text):
        """Convert markdown text to HTML."""
        return self.markdown_parser(text)

    def parse_markdown_with_metadata(self, filepath):
        """
        Split a markdown file into its front matter mapping and body.

        Raises:
            PostParseError: if the file is unreadable or the front matter is
                absent or not a YAML mapping
        """
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise PostParseError(filepath, f"cannot read file: {e}") from e

        content = content.lstrip('\ufeff')
        match = FRONT_MATTER_RE.match(content)
        if not match:
            raise PostParseError(filepath, "missing front matter")

        try:
            metadata = yaml.safe_load(match.group(1))
        except (yaml.YAMLError, ValueError) as e:
            raise PostParseError(filepath, f"invalid YAML front matter: {e}") from e
        if not isinstance(metadata, dict):
            raise PostParseError(filepath, "front matter is not a mapping")

        markdown_content = content[match.end():].strip()
        return metadata, markdown_content

    def load(self, filepath):
        """
        Build a Post from a markdown file.

        Raises:
            PostParseError: on any problem; no partial Post is returned
        """
        metadata, markdown_content = self.parse_markdown_with_metadata(filepath)

        for field in REQUIRED_FIELDS:
            if metadata.get(field) in (None, ''):
                raise PostParseError(filepath, f"missing required field '{field}'")

        try:
            publish_date = parse_date(metadata['date'])
        except ValueError as e:
            raise PostParseError(filepath, f"malformed date: {e}") from e

        slug = metadata.get('slug') or os.path.splitext(os.path.basename(filepath))[0]
        slug = str(slug).strip()
        if not is_valid_slug(slug):
            raise PostParseError(filepath, f"invalid slug {slug!r}")

        return Post(
            slug=slug,
            title=str(metadata['title']),
            description=str(metadata.get('description') or ''),
            author=str(metadata.get('author') or ''),
            publish_date=publish_date,
            content=self.markdown_filter(markdown_content),
            source=filepath,
        )


def load_posts(files, loader=None):
    """
    Load every candidate file, skipping (and logging) the ones that fail to parse.
    Returns the loaded posts in the order of `files`.
    """
    loader = loader or PostLoader()
    posts = []
    for file_path in files:
        try:
            posts.append(loader.load(file_path))
        except PostParseError as e:
            loader.logger.warning(f"Post ignored: {os.path.basename(file_path)}; Error: {e.reason}")
    return posts
