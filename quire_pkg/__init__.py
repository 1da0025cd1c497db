"""
Quire - a small static blog generator.

Quire takes dated posts written in Markdown with YAML front matter and uses
Jinja2 templates to generate one HTML page per post, an index page mirroring
the newest post, and an RSS feed of the most recent posts.
"""

__version__ = "1.0.0"

from .core import Quire, RenderContext
from .errors import BuildError, ConfigError, PostParseError, QuireError
from .posts import Post, PostLoader
from .settings import Config, QuireSettings

__all__ = [
    'Quire', 'RenderContext', 'Post', 'PostLoader', 'Config', 'QuireSettings',
    'QuireError', 'BuildError', 'ConfigError', 'PostParseError',
]
