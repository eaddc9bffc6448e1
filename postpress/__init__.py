"""Postpress static blog renderer.

This package renders a Jekyll-style blog (Markdown posts with YAML front matter,
Jinja2 layouts and includes) into a directory of static HTML pages.

The main entry point is the CLI module, which provides commands for building
the site and serving it locally while rebuilding on changes.

Architecture:
- frontmatter: splits documents into front matter and body
- markup: Markdown to HTML conversion with Pygments highlighting
- layouts: the layout registry and include fragments, loaded once per build
- renderer: turns one document into one rendered page, without side effects
- build: discovers sources, renders them independently and writes the output
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
