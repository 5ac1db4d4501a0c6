from __future__ import annotations

from typing import List, Optional, Protocol

from analysis.service import AnalysisResult
from analysis.statistics import FrequencyTable


class NarrativeGenerator(Protocol):
    """Generatore esterno (LLM): riceve il contesto testuale e la tabella, ritorna testo libero."""

    def generate(self, context: str, table: FrequencyTable) -> str:
        ...


def _format_market_line(label: str, parts: List[str]) -> str:
    return f"- {label}: " + ", ".join(parts)


def build_narrative_context(result: AnalysisResult, max_listed: int = 10) -> str:
    """
    Blocco di contesto per il generatore narrativo:
    partita target, riepilogo, percentuali per mercato, partite simili principali.
    """
    target = result.target
    lines: List[str] = [
        f"Partita: {target.label} ({target.league or '-'}, {target.date or '?'} {target.time or ''})".rstrip(),
        f"Soglia quote: {result.config.tolerance} | Mercati minimi: {result.config.min_matched_markets}",
        result.table.summary,
    ]

    if result.table.sample_size:
        lines.append("")
        lines.append("Frequenze esiti:")
        for market in result.table.markets():
            parts = [
                f"{outcome} {freq.percentage}% ({freq.realized}/{freq.total})"
                for outcome, freq in result.table.for_market(market).items()
            ]
            lines.append(_format_market_line(market.value, parts))

        lines.append("")
        lines.append("Partite simili:")
        for m in result.matched[:max_listed]:
            score = m.fixture.scores()
            ft = score.ft_score or "?"
            ht = f" (IY {score.ht_score})" if score.ht_score else ""
            lines.append(
                f"- {m.fixture.date or '?'} {m.fixture.label} {ft}{ht}"
                f" [{m.matched_market_count} mercati]"
            )
        if len(result.matched) > max_listed:
            lines.append(f"... e altre {len(result.matched) - max_listed} partite")

    return "\n".join(lines)


def render_report(
    result: AnalysisResult,
    generator: Optional[NarrativeGenerator] = None,
    max_listed: int = 10,
) -> str:
    """Blocco di contesto seguito dal testo del generatore narrativo, se fornito."""
    context = build_narrative_context(result, max_listed=max_listed)
    if generator is None:
        return context
    narrative = (generator.generate(context, result.table) or "").strip()
    if not narrative:
        return context
    return f"{context}\n\nAnalisi:\n{narrative}"


__all__ = ["NarrativeGenerator", "build_narrative_context", "render_report"]
