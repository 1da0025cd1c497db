#!/usr/bin/env python3
"""
Command-line interface for Quire - static blog generator.
"""

import os
import sys
import argparse
import time
from datetime import date
from importlib import resources

from . import __version__
from .core import Quire
from .errors import QuireError
from .settings import QuireSettings

SAMPLE_POST = """---
title: "Hello, Quire"
date: {date}
author: "Site Author"
description: "The first post on this site."
---

# Hello

This post lives in `post/hello-quire.md`. Every `.md` file in that directory
becomes a page, and the newest one is also served as the home page.
"""


def create_starter_structure(target_dir: str) -> None:
    """Create post/ and template/ directories with a sample post and the default templates."""
    posts_dir = os.path.join(target_dir, QuireSettings.DEFAULT_PATHS['posts'])
    templates_dir = os.path.join(target_dir, QuireSettings.DEFAULT_PATHS['templates'])

    for directory in (posts_dir, templates_dir):
        if os.path.exists(directory):
            print(f"Directory already exists: {os.path.relpath(directory, target_dir)}")
        else:
            os.makedirs(directory)
            print(f"Created directory: {os.path.relpath(directory, target_dir)}")

    template_source = resources.files('quire_pkg').joinpath('templates')
    for template_name in ('base.html', 'post.html'):
        dest_path = os.path.join(templates_dir, template_name)
        if os.path.exists(dest_path):
            print(f"Template already exists: {template_name}")
            continue
        with open(dest_path, 'w', encoding='utf-8') as f:
            f.write(template_source.joinpath(template_name).read_text(encoding='utf-8'))
        print(f"Created template: {template_name}")

    post_path = os.path.join(posts_dir, 'hello-quire.md')
    if os.path.exists(post_path):
        print("Sample post already exists: hello-quire.md")
    else:
        with open(post_path, 'w', encoding='utf-8') as f:
            f.write(SAMPLE_POST.format(date=date.today().isoformat()))
        print("Created sample post: hello-quire.md")


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description='Quire - Static Blog Generator')
    parser.add_argument('--config', type=str,
                        help='Configuration file (default: config.json in the current directory)')
    parser.add_argument('--posts', type=str,
                        help='Directory containing markdown posts')
    parser.add_argument('--templates', type=str,
                        help='Directory containing post.html and base.html')
    parser.add_argument('--output', type=str,
                        help='Output directory for the generated site')
    parser.add_argument('--recent-posts-count', type=int,
                        help='Number of posts in the feed and recent list')
    parser.add_argument('--init', type=str, choices=['json', 'yml', 'yaml'],
                        help='Create a sample configuration file')
    parser.add_argument('--no-log-file', action='store_true',
                        help='Do not write a build log to logs/')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)

    try:
        # Handle init command
        if args.init:
            config_path = QuireSettings().create_sample_config(args.init)
            print(f"Created sample configuration file: {config_path}")
            create_starter_structure(os.getcwd())
            return 0

        config_dir = os.path.dirname(os.path.abspath(args.config)) if args.config else None
        settings_loader = QuireSettings(config_dir=config_dir, config_file=args.config)
        settings_loader.load_settings()

        # Command line arguments take precedence
        overrides = {
            'posts': args.posts,
            'templates': args.templates,
            'output': args.output,
            'recent_posts_count': args.recent_posts_count,
        }
        config = settings_loader.build_config(overrides)
        paths = settings_loader.build_paths(overrides)

        overall_start_time = time.time()
        generator = Quire(
            config,
            posts_dir=paths.posts_dir,
            templates_dir=paths.templates_dir,
            output_dir=paths.output_dir,
            log_dir=None if args.no_log_file else os.path.join(os.getcwd(), 'logs'),
        )
        generator.build()

        total_time = time.time() - overall_start_time
        generator.logger.info(f"Site build completed in {total_time:.6f} seconds.")
        generator.logger.info(f"Total posts generated: {generator.posts_generated}")
        generator.logger.info(f"Total posts skipped: {generator.posts_skipped}")
    except QuireError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
