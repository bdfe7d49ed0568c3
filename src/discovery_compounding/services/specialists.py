"""Research specialists: gather sources for a topic and synthesize a finding.

A :class:`Specialist` issues a handful of search prompts to the reasoning
capability, extracts URLs from the text it gets back, scores each source's
credibility heuristically, keeps the best few and asks for a one-sentence
synthesis across them.  Results are returned as :class:`ResearchResult`
values; the scheduler decides what becomes a discovery.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from urllib.parse import urlparse

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict, Field

from discovery_compounding.domain.entities import Topic
from discovery_compounding.domain.exceptions import DiscoveryCompoundingError
from discovery_compounding.domain.values import ResearchResult, Source, SpecialistProfile
from discovery_compounding.infrastructure.reasoning import ReasoningCapability, parse_structured

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"https?://[^\s)\]>\"']+")
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*#]+|\d+[.)])\s*")

MAX_QUERIES = 4
MAX_SOURCES = 5
INSUFFICIENT_SCORE = 2.0
DEFAULT_SYNTHESIS_SCORE = 3.0


# -- Structured output schemas -----------------------------------------------


class SynthesisOutput(BaseModel):
    """Structured output schema for source synthesis."""

    model_config = ConfigDict(allow_inf_nan=False)

    finding: str = Field(description="One-sentence discovery")
    novelty_explanation: str = Field(default="", description="Why the finding is new")
    novelty_score: float = Field(default=DEFAULT_SYNTHESIS_SCORE, description="Self-assessed novelty 1-10")
    sources_synthesized: int | None = Field(
        default=None, description="How many of the given sources the finding combines"
    )


# -- Prompts -----------------------------------------------------------------

_SEARCH_PROMPT = PromptTemplate.from_template(
    "## Task: Source search\n"
    "You are the {specialist_name} specialist ({focus}).\n"
    "Search for recent, credible sources about: {query}\n\n"
    "List up to 5 results, one per line, formatted as:\n"
    "<title> <url> <one-sentence key insight>"
)

_SYNTHESIS_PROMPT = PromptTemplate.from_template(
    "## Task: Source synthesis\n"
    "You are the {specialist_name} specialist ({focus}).\n"
    "Topic: {topic}\n"
    "{handoff_note}\n"
    "Sources:\n{sources}\n\n"
    "Combine insights from at least two of these sources into a single, "
    "specific, novel finding that none of them states on its own.\n"
    "Respond with JSON only:\n"
    '{{"finding": "<one sentence>", "novelty_explanation": "<why it is new>", '
    '"novelty_score": <1-10>, "sources_synthesized": <int>}}'
)


# -- Helpers -----------------------------------------------------------------


def estimate_credibility(url: str, title: str = "") -> int:
    """Heuristic 1-10 credibility from the host name and title."""
    host = (urlparse(url).hostname or url).lower()
    score = 5
    if any(marker in host for marker in ("edu", "arxiv", "scholar")):
        score += 3
    if host.endswith(".gov") or host.endswith(".org") or ".gov." in host:
        score += 2
    if any(host == d or host.endswith("." + d) for d in ("nature.com", "science.org", "ieee.org")):
        score += 3
    if re.search(r"research|study", title, re.IGNORECASE):
        score += 1
    return max(1, min(10, score))


def parse_sources(text: str, query: str = "") -> list[Source]:
    """Extract sources from free-text search output, one per URL."""
    sources: list[Source] = []
    for line in text.splitlines():
        for match in _URL_RE.finditer(line):
            url = match.group(0).rstrip(".,;:")
            title = _LIST_MARKER_RE.sub("", line[: match.start()]).strip(" -:|[]()\t")
            insight = line[match.end():].strip(" -:|)\t")
            insight = insight.split(". ")[0].strip()
            if not title:
                title = f"Search result for: {query}" if query else url
            sources.append(
                Source(
                    url=url,
                    title=title[:200],
                    key_insight=insight[:300],
                    credibility=estimate_credibility(url, title),
                )
            )
    return sources


def rank_sources(sources: Sequence[Source], limit: int = MAX_SOURCES) -> list[Source]:
    """De-duplicate by URL and keep the most credible *limit* sources."""
    unique: dict[str, Source] = {}
    for source in sources:
        unique.setdefault(source.url, source)
    ranked = sorted(unique.values(), key=lambda s: s.credibility, reverse=True)
    return ranked[:limit]


# -- Specialist --------------------------------------------------------------


class Specialist:
    """One research role working through a reasoning capability.

    Parameters
    ----------
    profile:
        Roster entry (id, name, domain, focus).
    reasoner:
        Capability used for both search and synthesis prompts.
    """

    def __init__(self, profile: SpecialistProfile, reasoner: ReasoningCapability) -> None:
        self.profile = profile
        self.reasoner = reasoner
        self.current_topic: str | None = None
        self.completed = 0

    @property
    def specialist_id(self) -> str:
        return self.profile.specialist_id

    @property
    def status(self) -> str:
        if self.current_topic:
            return f"Researching: {self.current_topic}"
        return f"Ready ({self.completed} completed)"

    def build_queries(self, topic_text: str) -> list[str]:
        queries = [
            topic_text,
            f"{topic_text} research breakthrough",
            f"{topic_text} novel applications",
            f"{topic_text} interdisciplinary connections",
        ]
        if self.profile.focus:
            queries.insert(1, f"{topic_text} {self.profile.focus}")
        return queries[:MAX_QUERIES]

    async def gather_sources(self, topic_text: str) -> list[Source]:
        """Run the search prompts and return the ranked sources.

        A failed query is logged and skipped; if every query fails the last
        error propagates.
        """
        found: list[Source] = []
        queries = self.build_queries(topic_text)
        last_error: DiscoveryCompoundingError | None = None
        failures = 0
        for query in queries:
            prompt = _SEARCH_PROMPT.format(
                specialist_name=self.profile.name,
                focus=self.profile.focus or self.profile.domain,
                query=query,
            )
            try:
                text = await self.reasoner.invoke(prompt)
            except DiscoveryCompoundingError as exc:
                logger.warning("%s: search '%s' failed: %s", self.profile.name, query, exc)
                last_error = exc
                failures += 1
                continue
            found.extend(parse_sources(text, query))
        if failures == len(queries) and last_error is not None:
            raise last_error
        return rank_sources(found)

    async def synthesize(
        self,
        topic: Topic,
        sources: Sequence[Source],
        *,
        handoff_from: str | None = None,
        prior: ResearchResult | None = None,
    ) -> ResearchResult:
        """Ask for one finding across *sources*.

        Fewer than two sources yields a low-novelty, non-candidate result
        without calling the capability.
        """
        if len(sources) < 2:
            return ResearchResult(
                specialist_id=self.specialist_id,
                topic_id=topic.topic_id,
                novelty_explanation="Insufficient sources for synthesis",
                novelty_score=INSUFFICIENT_SCORE,
                sources=tuple(sources),
                sources_synthesized=len(sources),
                handoff_from=handoff_from,
            )

        handoff_note = ""
        if prior is not None and handoff_from is not None:
            handoff_note = (
                f"Handed off from {handoff_from}, whose finding scored "
                f"{prior.novelty_score:g}: {prior.finding or '(none)'}\n"
                "Find a different angle."
            )
        prompt = _SYNTHESIS_PROMPT.format(
            specialist_name=self.profile.name,
            focus=self.profile.focus or self.profile.domain,
            topic=topic.text,
            handoff_note=handoff_note,
            sources="\n".join(
                f"{i}. {s.title} ({s.url}) - {s.key_insight} [credibility {s.credibility}]"
                for i, s in enumerate(sources, 1)
            ),
        )
        output = parse_structured(await self.reasoner.invoke(prompt), SynthesisOutput)

        if output.sources_synthesized is None:
            synthesized = 2
        else:
            synthesized = max(0, min(len(sources), output.sources_synthesized))
        explanation = output.novelty_explanation
        if synthesized >= 2:
            explanation = f"{explanation} (Synthesized from {synthesized} sources)".strip()

        return ResearchResult(
            specialist_id=self.specialist_id,
            topic_id=topic.topic_id,
            finding=output.finding.strip(),
            novelty_explanation=explanation,
            novelty_score=max(1.0, min(10.0, output.novelty_score)),
            sources=tuple(sources),
            sources_synthesized=synthesized,
            handoff_from=handoff_from,
        )

    async def research(
        self,
        topic: Topic,
        *,
        handoff_from: str | None = None,
        prior: ResearchResult | None = None,
    ) -> ResearchResult:
        """Gather sources and synthesize a result for *topic*."""
        self.current_topic = topic.text
        try:
            sources = await self.gather_sources(topic.text)
            logger.info(
                "%s: %d source(s) for '%s'", self.profile.name, len(sources), topic.text
            )
            result = await self.synthesize(
                topic, sources, handoff_from=handoff_from, prior=prior
            )
            self.completed += 1
            return result
        finally:
            self.current_topic = None


# -- Default roster ----------------------------------------------------------

DEFAULT_ROSTER: tuple[SpecialistProfile, ...] = (
    SpecialistProfile(
        specialist_id="technology",
        name="Technology",
        domain="technology",
        focus="emerging technology and engineering",
    ),
    SpecialistProfile(
        specialist_id="science",
        name="Science",
        domain="science",
        focus="fundamental scientific research",
    ),
    SpecialistProfile(
        specialist_id="applications",
        name="Applications",
        domain="applications",
        focus="practical applications and industry use",
    ),
)
