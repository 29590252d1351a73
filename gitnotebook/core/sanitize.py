from __future__ import annotations

import bleach

ALLOWED_TAGS = [
    "a", "p", "br", "hr",
    "strong", "em", "del", "code", "pre", "blockquote",
    "ul", "ol", "li",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "table", "thead", "tbody", "tr", "th", "td",
]
ALLOWED_ATTRS = {
    "a": ["href", "title"],
    "th": ["align"], "td": ["align"],
    # anchors produced by the markdown 'toc' extension
    "h1": ["id"], "h2": ["id"], "h3": ["id"],
    "h4": ["id"], "h5": ["id"], "h6": ["id"],
}
ALLOWED_PROTOCOLS = ["http", "https", "mailto"]


def sanitize_rendered_html(rendered_html: str) -> str:
    """
    Clean markdown output before it reaches the preview web view.
    Raw HTML inside a note must not be able to run script there.
    """
    return bleach.clean(
        rendered_html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRS,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
    )
