"""Keyword retrieval over a local corpus of short text lines.

Each corpus line is scored by how many times the whole query occurs in it
(case-insensitive, non-overlapping). Results are ranked, deduplicated by
(source_title, article_text) and cut to top_k. An empty result is reported
as insufficient evidence rather than a bare empty list so callers branch on
an explicit negative finding.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from hydrodoc.state import Citation, citation_key

_ARTICLE_RE = re.compile(r"^\s*(?:Article\s+(\d+)|第\s*(\d+)\s*条)", re.IGNORECASE)


@dataclass
class CorpusBlock:
    """One named text block. Every non-blank line is scored on its own."""

    title: str
    lines: list[str]
    superseded: bool = False
    pending_revision: bool = False

    @property
    def searchable(self) -> bool:
        return not (self.superseded or self.pending_revision)


@dataclass
class Corpus:
    blocks: list[CorpusBlock] = field(default_factory=list)

    @classmethod
    def from_directory(
        cls,
        directory: Path,
        superseded_markers: list[str] | None = None,
        pending_markers: list[str] | None = None,
    ) -> "Corpus":
        """Load every *.md file in directory as one block titled by its file stem.

        A block is flagged when its text contains any of the given markers.
        A missing directory yields an empty corpus.
        """
        superseded_markers = superseded_markers or []
        pending_markers = pending_markers or []
        blocks = []
        if not directory.is_dir():
            return cls(blocks)

        for path in sorted(directory.glob("*.md")):
            text = path.read_text(encoding="utf-8")
            blocks.append(CorpusBlock(
                title=path.stem,
                lines=text.splitlines(),
                superseded=any(m in text for m in superseded_markers),
                pending_revision=any(m in text for m in pending_markers),
            ))
        return cls(blocks)


@dataclass
class RetrievalResult:
    citations: list[Citation]
    insufficient_evidence: bool


def parse_article_number(line: str) -> int | None:
    """Return N for lines starting with 'Article N' or '第N条', else None."""
    match = _ARTICLE_RE.match(line)
    if not match:
        return None
    return int(match.group(1) or match.group(2))


def keyword_score(text: str, query: str) -> int:
    """Count case-insensitive, non-overlapping occurrences of query in text."""
    if not query:
        return 0
    return text.lower().count(query.lower())


class RetrievalScorer:
    """Ranks corpus lines against a free-text query."""

    def __init__(self, corpus: Corpus):
        self.corpus = corpus

    def search(self, query: str, top_k: int = 5) -> RetrievalResult:
        query = query.strip()
        scored: list[tuple[int, Citation]] = []

        for block in self.corpus.blocks:
            if not block.searchable:
                continue
            for line in block.lines:
                line = line.strip()
                if not line:
                    continue
                score = keyword_score(line, query)
                if score == 0:
                    continue
                scored.append((score, {
                    "source_title": block.title,
                    "article_number": parse_article_number(line),
                    "article_text": line,
                }))

        ranked = _dedupe_and_rank(scored, top_k)
        if not ranked:
            return RetrievalResult(citations=[], insufficient_evidence=True)
        return RetrievalResult(citations=ranked, insufficient_evidence=False)


def _dedupe_and_rank(scored: list[tuple[int, Citation]], top_k: int) -> list[Citation]:
    """Keep the best-scoring instance per citation key, sort descending, truncate.

    Ties keep corpus order (sort is stable).
    """
    best: dict[tuple[str, str], tuple[int, Citation]] = {}
    for score, citation in scored:
        key = citation_key(citation)
        existing = best.get(key)
        if existing is None or existing[0] < score:
            best[key] = (score, citation)

    ranked = sorted(best.values(), key=lambda item: item[0], reverse=True)
    return [citation for _, citation in ranked[:max(top_k, 0)]]
