from __future__ import annotations

import markdown as md

from gitnotebook.core.sanitize import sanitize_rendered_html

MD_EXTENSIONS = ["fenced_code", "tables", "toc"]

BASE_CSS = """
    body { font-family: sans-serif; padding: 16px; line-height: 1.5; }
    code, pre { background: #f5f5f5; }
    pre { padding: 12px; overflow-x: auto; }
    table { border-collapse: collapse; }
    th, td { border: 1px solid #ddd; padding: 4px 8px; }
    a { text-decoration: none; }
    a:hover { text-decoration: underline; }
"""


class MarkdownRenderer:
    def __init__(self, *, extensions: list[str] | None = None, css: str = BASE_CSS):
        self.extensions = list(extensions or MD_EXTENSIONS)
        self.css = css

    def render(self, text: str) -> str:
        """note text -> sanitized HTML fragment"""
        rendered = md.markdown(text or "", extensions=self.extensions)
        return sanitize_rendered_html(rendered)

    def render_page(self, text: str) -> str:
        return f"""\
<html>
<head>
  <meta charset="utf-8"/>
  <style>{self.css}</style>
</head>
<body>{self.render(text)}</body>
</html>
"""
