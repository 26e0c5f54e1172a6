"""
HTML Assembler
==============

Wraps the lowered template and the generated script into a complete
document.

Frontmatter keys used here (all optional, all HTML-escaped):

| Key           | Output                                         |
|---------------|------------------------------------------------|
| title         | <title> (default "MTM App")                    |
| description   | <meta name="description">                      |
| route         | <meta name="route"> (default "/")              |
| keywords      | <meta name="keywords">                         |
| author        | <meta name="author">                           |
| ogTitle       | <meta property="og:title">                     |
| ogDescription | <meta property="og:description">               |
| ogImage       | <meta property="og:image">                     |
"""

from html import escape
from typing import Mapping, Optional

DEFAULT_TITLE = "MTM App"
DEFAULT_DESCRIPTION = "MTM Application"

_NAMED_META = (("keywords", "keywords"), ("author", "author"))
_OPEN_GRAPH_META = (
    ("ogTitle", "og:title"),
    ("ogDescription", "og:description"),
    ("ogImage", "og:image"),
)


def meta_tags(frontmatter: Mapping[str, str]) -> list[str]:
    """Return the <meta> tags for the frontmatter, in a fixed order."""
    tags = [
        f'<meta name="description" content="{escape(frontmatter.get("description", DEFAULT_DESCRIPTION))}">',
        f'<meta name="route" content="{escape(frontmatter.get("route", "/"))}">',
    ]
    for key, name in _NAMED_META:
        if key in frontmatter:
            tags.append(f'<meta name="{name}" content="{escape(frontmatter[key])}">')
    for key, prop in _OPEN_GRAPH_META:
        if key in frontmatter:
            tags.append(f'<meta property="{prop}" content="{escape(frontmatter[key])}">')
    return tags


def render_document(frontmatter: Mapping[str, str], body_html: str, script_tag: str) -> str:
    """
    Assemble the final document.

    Args:
        frontmatter: Page frontmatter
        body_html: Lowered template, placed inside <div id="app">
        script_tag: Inline script or external script reference
    """
    title = escape(frontmatter.get("title", DEFAULT_TITLE))
    head = "\n".join(f"    {tag}" for tag in meta_tags(frontmatter))

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '    <meta charset="UTF-8">\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"    <title>{title}</title>\n"
        f"{head}\n"
        "</head>\n"
        "<body>\n"
        f'    <div id="app">{body_html}</div>\n'
        f"    {script_tag}\n"
        "</body>\n"
        "</html>\n"
    )


def output_filename(route: Optional[str]) -> str:
    """
    Name of the HTML file for a route.

    >>> output_filename("/")
    'index.html'
    >>> output_filename("/blog/[slug]")
    'blog-[slug].html'
    """
    if not route or route == "/":
        return "index.html"
    return route.strip("/").replace("/", "-") + ".html"
