"""Citation line formatting shared by the drafting, verification and rendering steps.

Lines follow: According to Article N of <title>: "<verbatim text>"
"""

from hydrodoc.state import Citation

EXCERPT_LENGTH = 50


def format_citation(citation: Citation) -> str:
    num = citation.get("article_number")
    num = str(num) if num is not None else "X"
    return f'According to Article {num} of {citation["source_title"]}: "{citation["article_text"]}"'


def format_citations(citations: list[Citation]) -> list[str]:
    return [format_citation(c) for c in citations]


def quoted_excerpt(line: str, limit: int = EXCERPT_LENGTH) -> str:
    """Return the text between the first and last double quote, truncated to limit.

    Returns an empty string when the line has fewer than two quote characters.
    """
    first = line.find('"')
    last = line.rfind('"')
    if first == -1 or last <= first:
        return ""
    return line[first + 1:last][:limit]
