import os
import logging
from contextlib import ExitStack
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from urllib.parse import urljoin

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, meta, select_autoescape

from .errors import BuildError
from .feed import FEED_FILENAME, build_feed
from .posts import Post, PostLoader, load_posts

INDEX_FILENAME = 'index.html'
POST_TEMPLATE = 'post.html'

# Owned by whoever deploys the site; never removed or overwritten
RESERVED_FILES = frozenset({
    'favicon.ico',
    'robots.txt',
    'humans.txt',
    'apple-touch-icon.png',
})


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages (and all warnings) to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total posts generated:",
            "Total posts skipped:",
            "Clearing publish directory",
            "Rendering posts",
            "Generating RSS feed",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


@dataclass(frozen=True)
class RenderContext:
    """Everything a page template gets to see."""
    post: Optional[Post]
    index: int
    recent: List[Post]
    all_posts: List[Post]
    config: object
    rss_url: str

    @property
    def is_index(self):
        return self.post is not None and self.index == 0

    @property
    def newer(self):
        if self.post is None or self.index == 0:
            return None
        return self.all_posts[self.index - 1]

    @property
    def older(self):
        if self.post is None or self.index + 1 >= len(self.all_posts):
            return None
        return self.all_posts[self.index + 1]

    def template_vars(self):
        return {
            'post': self.post,
            'index': self.index,
            'recent': self.recent,
            'all_posts': self.all_posts,
            'config': self.config,
            'rss_url': self.rss_url,
            'is_index': self.is_index,
            'newer': self.newer,
            'older': self.older,
        }


class FanOutWriter:
    """Writes every chunk it receives to all of its streams."""
    def __init__(self, *streams):
        self.streams = streams

    def write(self, data):
        for stream in self.streams:
            stream.write(data)


def sort_posts(posts):
    """Newest first; posts published at the same moment are ordered by slug."""
    by_slug = sorted(posts, key=lambda p: p.slug)
    return sorted(by_slug, key=lambda p: p.publish_date, reverse=True)


def select_recent(sorted_posts, count):
    """The first `count` posts, or all of them when there are fewer."""
    return sorted_posts[:min(count, len(sorted_posts))]


def check_unique_slugs(posts):
    """
    Refuse posts whose output file would clash with another post, a generated
    file, or a reserved file.

    Raises:
        BuildError: naming the offending slug and source file(s)
    """
    protected = RESERVED_FILES | {INDEX_FILENAME, FEED_FILENAME}
    seen = {}
    for post in posts:
        if post.slug in protected:
            raise BuildError(f"Post {post.source} uses reserved slug {post.slug!r}")
        if post.slug in seen:
            raise BuildError(
                f"Duplicate slug {post.slug!r} in {seen[post.slug].source} and {post.source}"
            )
        seen[post.slug] = post


class Quire:
    def __init__(self, config, posts_dir='post', templates_dir='template', output_dir='public', log_dir=None):
        self.config = config
        self.posts_dir = posts_dir
        self.templates_dir = templates_dir
        self.output_dir = output_dir
        self.rss_url = urljoin(config.base_url, FEED_FILENAME)
        self.posts_generated = 0
        self.posts_skipped = 0
        self.posts = []
        self.recent = []

        self.setup_logging(log_dir)

        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(['html', 'xml']),
            undefined=StrictUndefined,
        )
        self.post_loader = PostLoader()

    def setup_logging(self, log_dir=None):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Quire')
        self.logger.setLevel(logging.DEBUG)

        if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
                   for h in self.logger.handlers):
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

        if log_dir:
            log_dir = os.path.abspath(log_dir)
            # One log file per logger; a new log_dir replaces the previous file
            for handler in [h for h in self.logger.handlers if isinstance(h, logging.FileHandler)]:
                if os.path.dirname(handler.baseFilename) != log_dir:
                    self.logger.removeHandler(handler)
                    handler.close()

        if log_dir and not any(isinstance(h, logging.FileHandler) for h in self.logger.handlers):
            # File handler for all logs
            os.makedirs(log_dir, exist_ok=True)
            log_filename = datetime.now().strftime('quire_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(log_dir, log_filename), encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(file_handler)

    def get_markdown_files(self, directory):
        """
        List the regular `.md` files in a directory, sorted by name.
        The extension check is case-sensitive and subdirectories are skipped.

        Raises:
            BuildError: if the directory cannot be read
        """
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            raise BuildError(f"Error reading posts directory {directory}: {e}") from e

        markdown_files = []
        for entry in entries:
            if entry.is_dir() or os.path.splitext(entry.name)[1] != '.md':
                continue
            markdown_files.append(entry.path)
        return markdown_files

    def load_template(self, template_name=POST_TEMPLATE):
        try:
            return self.env.get_template(template_name)
        except TemplateError as e:
            raise BuildError(f"Template error loading {template_name}: {e}") from e

    def load_templates(self, template_name=POST_TEMPLATE):
        """
        Load a template and every template it extends, includes or imports.
        Must run before the output directory is cleared. References whose
        names are computed at render time are not followed.
        """
        template = self.load_template(template_name)
        pending = [template_name]
        seen = {template_name}
        while pending:
            name = pending.pop()
            try:
                source = self.env.loader.get_source(self.env, name)[0]
                referenced = meta.find_referenced_templates(self.env.parse(source))
            except TemplateError as e:
                raise BuildError(f"Template error loading {name}: {e}") from e
            for ref in referenced:
                if ref is None or ref in seen:
                    continue
                seen.add(ref)
                self.load_template(ref)
                pending.append(ref)
        return template

    def clear_publish_dir(self):
        """
        Remove previously generated files from the output directory.
        Hidden files, subdirectories and RESERVED_FILES are left alone.

        Raises:
            BuildError: if the directory cannot be listed or a file cannot be deleted
        """
        self.logger.info(f"Clearing publish directory {self.output_dir}")
        try:
            os.makedirs(self.output_dir, exist_ok=True)
            entries = sorted(os.scandir(self.output_dir), key=lambda e: e.name)
        except OSError as e:
            raise BuildError(f"Error while getting public directory files: {e}") from e

        for entry in entries:
            if entry.is_dir() or entry.name.startswith('.') or entry.name in RESERVED_FILES:
                continue
            try:
                os.remove(entry.path)
                self.logger.debug(f"Removed stale file: {entry.name}")
            except OSError as e:
                raise BuildError(f"Error deleting file {entry.name}: {e}") from e

    def new_render_context(self, post, index):
        return RenderContext(
            post=post,
            index=index,
            recent=self.recent,
            all_posts=self.posts,
            config=self.config,
            rss_url=self.rss_url,
        )

    def generate_file(self, template, context, destinations):
        """
        Render `template` once, streaming the output to every path in `destinations`.

        Raises:
            BuildError: on template or write failure; files already written stay
        """
        names = ', '.join(os.path.basename(path) for path in destinations)
        try:
            with ExitStack() as stack:
                handles = [stack.enter_context(open(path, 'w', encoding='utf-8')) for path in destinations]
                writer = FanOutWriter(*handles)
                for chunk in template.generate(**context.template_vars()):
                    writer.write(chunk)
            self.logger.debug(f"Generated HTML: {names}")
        except TemplateError as e:
            raise BuildError(f"Template error rendering {names}: {e}") from e
        except OSError as e:
            raise BuildError(f"Error creating static file {names}: {e}") from e

    def render_pages(self, template):
        """Render every post; the newest one is also written as the site index."""
        self.logger.info(f"Rendering posts ({len(self.posts)})")
        for index, post in enumerate(self.posts):
            destinations = [os.path.join(self.output_dir, post.slug)]
            if index == 0:
                destinations.append(os.path.join(self.output_dir, INDEX_FILENAME))
            self.generate_file(template, self.new_render_context(post, index), destinations)
            self.posts_generated += 1

    def generate_rss(self):
        """Write the feed for the recent posts."""
        self.logger.info("Generating RSS feed")
        feed = build_feed(self.config, self.recent)
        feed.write_to_file(os.path.join(self.output_dir, FEED_FILENAME))
        return feed

    def build(self):
        """
        Main build process: scan, load, order, clear the output directory,
        render every post and write the feed. Any BuildError aborts the run.
        """
        self.logger.info("Starting site build...")
        template = self.load_templates()

        files = self.get_markdown_files(self.posts_dir)
        loaded = load_posts(files, self.post_loader)
        self.posts_skipped = len(files) - len(loaded)

        self.posts = sort_posts(loaded)
        self.recent = select_recent(self.posts, self.config.recent_posts_count)
        check_unique_slugs(self.posts)

        self.clear_publish_dir()
        self.render_pages(template)
        self.generate_rss()
        return self.posts
