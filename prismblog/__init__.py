"""prismblog: a Prismic-backed blog, served live or published as a static site.

This package renders blog posts stored in the Prismic headless CMS with Jinja2
templates. Pages are either served on demand by a Flask application or
pre-rendered into a git working copy that is committed and pushed to a
static-hosting repository.

The main entry point is the CLI module, which provides commands for running
a full static generation and for serving the live site.

Architecture:
- prismic: async CMS client and document model.
- templates / richtext: page rendering.
- writer / assets / gitsync: side effects of a generation run.
- generate: the coordinator that sequences them and decides when to commit.
"""

__all__ = ["__version__"]
__version__ = "0.3.0"
