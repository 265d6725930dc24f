"""Markdown → HTML rendering for archived crawl pages.

The conversion is a fixed sequence of line-oriented substitutions.  Order
matters: longer heading markers are matched before shorter ones, bold before
italic, and images before links, so that no rule re-matches the output of an
earlier one.
"""

import html
import re
from string import Template

from app.services.normalizer import origin_of

_HEADING_RULES = [
    (re.compile(rf"^{'#' * level}\s+(.+)$", re.MULTILINE), f"<h{level}>\\1</h{level}>")
    for level in range(6, 0, -1)
]
_INLINE_RULES = [
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"!\[([^\]]*)\]\(([^)]+)\)"), r'<img src="\2" alt="\1">'),
    (re.compile(r"\[([^\]]+)\]\(([^)]+)\)"), r'<a href="\2">\1</a>'),
    (re.compile(r"^---$", re.MULTILINE), "<hr>"),
    (re.compile(r"^[-*]\s+(.+)$", re.MULTILINE), r"<li>\1</li>"),
]
_LIST_RUN_RE = re.compile(r"((?:<li>.*</li>\n?)+)")

# Tags every non-empty heading with the same positional id the live page
# analyser assigns (h-0, h-1, ...) and scrolls to one on request from the
# embedding page.
SCROLL_ANCHOR_SCRIPT = """<script>
(function(){
  function tagHeadings(){
    var headings = document.querySelectorAll('h1,h2,h3,h4,h5,h6');
    var index = 0;
    for (var i = 0; i < headings.length; i++) {
      if (!headings[i].textContent.trim()) continue;
      headings[i].setAttribute('data-anchor-id', 'h-' + index);
      index++;
    }
  }
  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', tagHeadings);
  } else {
    tagHeadings();
  }
  window.addEventListener('message', function(e){
    if (!e.data || e.data.type !== 'scrollToAnchor' || !e.data.id) return;
    var el = document.querySelector('[data-anchor-id="' + CSS.escape(String(e.data.id)) + '"]');
    if (el) el.scrollIntoView({behavior: 'smooth', block: 'start'});
  });
})();
</script>"""

_DOCUMENT = Template("""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <base href="$base_href">
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: #0b1220;
      color: #dbe7ef;
      line-height: 1.7;
      max-width: 900px;
      margin: 0 auto;
      padding: 2rem 2.5rem;
    }
    h1, h2, h3, h4, h5, h6 { color: #ffffff; font-weight: 500; margin: 1.4rem 0 0.6rem; }
    h1 { font-size: 2rem; font-weight: 600; }
    h2 { font-size: 1.5rem; border-bottom: 1px solid #1f3350; padding-bottom: 0.4rem; }
    h3 { font-size: 1.2rem; }
    h4, h5, h6 { font-size: 1rem; }
    p, li { color: #b4c6d2; font-size: 0.95rem; margin: 0.5rem 0; }
    a { color: #4fb3d9; text-decoration: none; }
    a:hover { text-decoration: underline; }
    img { max-width: 100%; height: auto; border-radius: 8px; margin: 1rem 0; }
    ul { padding-left: 1.5rem; margin: 0.5rem 0; }
    hr { border: none; border-top: 1px solid #1f3350; margin: 1.5rem 0; }
  </style>
</head>
<body>
$content
$script
</body>
</html>
""")


def markdown_to_html(markdown: str) -> str:
    """Convert *markdown* to an HTML fragment."""
    text = markdown or ""
    for pattern, replacement in _HEADING_RULES:
        text = pattern.sub(replacement, text)
    for pattern, replacement in _INLINE_RULES:
        text = pattern.sub(replacement, text)

    lines = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped:
            # Kept as a separator so list runs either side stay distinct
            lines.append("")
        elif stripped.startswith("<"):
            lines.append(stripped)
        else:
            lines.append(f"<p>{stripped}</p>")

    text = _LIST_RUN_RE.sub(r"<ul>\1</ul>", "\n".join(lines))
    return "\n".join(line for line in text.split("\n") if line.strip())


def render_document(markdown: str, page_url: str) -> str:
    """Render *markdown* as a standalone, embeddable HTML document.

    Relative links and images resolve against the origin of *page_url*.
    """
    return _DOCUMENT.substitute(
        base_href=html.escape(origin_of(page_url) + "/", quote=True),
        content=markdown_to_html(markdown),
        script=SCROLL_ANCHOR_SCRIPT,
    )
