"""Test configuration and fixtures for Quire tests."""

import pytest
import tempfile
import shutil
import os
from pathlib import Path

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire_pkg.settings import Config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def posts_dir(temp_dir):
    """Create an empty posts directory."""
    posts_dir = Path(temp_dir) / 'post'
    posts_dir.mkdir()
    return str(posts_dir)


@pytest.fixture
def write_post(posts_dir):
    """Return a helper that writes a post file into the posts directory."""
    def _write_post(filename, title='Untitled', date='2023-01-01', body='Some text.', **extra):
        lines = ['---']
        if title is not None:
            lines.append(f'title: {title}')
        if date is not None:
            lines.append(f'date: {date}')
        for key, value in extra.items():
            lines.append(f'{key}: {value}')
        lines.append('---')
        lines.append('')
        lines.append(body)
        path = Path(posts_dir) / filename
        path.write_text('\n'.join(lines) + '\n', encoding='utf-8')
        return str(path)
    return _write_post


@pytest.fixture
def templates_dir(temp_dir):
    """Create a templates directory with a base layout and a post section."""
    templates_dir = Path(temp_dir) / 'template'
    templates_dir.mkdir()

    base_template = templates_dir / 'base.html'
    base_template.write_text("""<!DOCTYPE html>
<html>
<head>
    <title>{% block title %}{{ config.site_name }}{% endblock %}</title>
    <link rel="alternate" href="{{ rss_url }}">
</head>
<body>
    {% block content %}{% endblock %}
    <ul class="recent">{% for item in recent %}<li>{{ item.slug }}</li>{% endfor %}</ul>
    <ul class="all">{% for item in all_posts %}<li>{{ item.slug }}</li>{% endfor %}</ul>
</body>
</html>""")

    post_template = templates_dir / 'post.html'
    post_template.write_text("""{% extends "base.html" %}
{% block title %}{{ post.title }}{% endblock %}
{% block content %}
<article data-index="{{ index }}">
    <h1>{{ post.title }}</h1>
    <div>{{ post.content|safe }}</div>
</article>
{% endblock %}""")

    return str(templates_dir)


@pytest.fixture
def output_dir(temp_dir):
    """Create an output directory."""
    output_dir = Path(temp_dir) / 'public'
    output_dir.mkdir()
    return str(output_dir)


@pytest.fixture
def config():
    """A typical site configuration."""
    return Config(
        site_name='Test Site',
        slogan='Testing things',
        base_url='https://example.com/',
        recent_posts_count=2,
    )
