"""Content, SEO and accessibility rules evaluated over an extracted page."""

from typing import List, Optional

from app.models.page import ExtractedPage, Issue

LOW_WORD_COUNT = 100


def evaluate(page: ExtractedPage) -> List[Issue]:
    """Return the issues found on *page*, in rule order.

    The viewport and og:image rules only fire for live HTML pages, whose
    flags are booleans rather than ``None``.
    """
    issues: List[Issue] = []

    if not any(heading.level == 1 for heading in page.headings):
        issues.append(Issue(severity="critical", message="No H1 heading"))
    if not page.description:
        issues.append(Issue(severity="critical", message="Missing meta description"))
    if page.word_count < LOW_WORD_COUNT:
        issues.append(Issue(severity="warning", message="Low word count"))
    if page.has_viewport is False:
        issues.append(Issue(severity="warning", message="Missing viewport meta tag"))
    if page.has_og_image is False:
        issues.append(Issue(severity="warning", message="No og:image meta tag"))
    if page.images_without_alt > 0:
        issues.append(
            Issue(severity="warning", message=f"{page.images_without_alt} images missing alt text")
        )

    return issues


def with_issues(page: ExtractedPage) -> ExtractedPage:
    """Return a copy of *page* carrying its evaluated issues."""
    return page.model_copy(update={"issues": evaluate(page)})


def annotate(issues: List[Issue], page_title: Optional[str]) -> List[Issue]:
    """Return copies of *issues* tagged with the title of the page they came from."""
    return [issue.model_copy(update={"page": page_title}) for issue in issues]
