# controlboard/services/aggregator.py
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from controlboard.core.config import CRITICAL_LIST_PAGE_SIZE, CRITICAL_RISK_CLASSES
from controlboard.schemas.compliance import Entity, EntityStatus, Status
from controlboard.schemas.dashboard import (
    CriticalEntity,
    DashboardSummary,
    MonthlySeries,
    StatusCounts,
)
from controlboard.services.periods import month_key

# status → (label, badge kind) for the critical table
STATUS_BADGES: Dict[Status, Tuple[str, str]] = {
    Status.OVERDUE: ("Overdue", "danger"),
    Status.OUT_OF_STANDARD: ("Out of standard", "danger"),
    Status.WARNING: ("Gap", "warning"),
    Status.PENDING: ("Awaiting execution", "info"),
    Status.EFFECTIVE: ("OK", "neutral"),
    Status.NOT_APPLICABLE: ("Not applicable", "neutral"),
}


def ordered(statuses: Iterable[EntityStatus]) -> List[EntityStatus]:
    """Stable (kind, id) order so results never depend on completion order."""
    return sorted(statuses, key=lambda s: (s.kind, s.entity_id))


def count_statuses(statuses: Iterable[EntityStatus]) -> StatusCounts:
    counts = StatusCounts()
    for s in statuses:
        setattr(counts, s.status.value, getattr(counts, s.status.value) + 1)
        counts.total += 1
    return counts


def pct_in_target(counts: StatusCounts) -> float:
    """effective / evaluated (not_applicable excluded); 0.0 when nothing was evaluated."""
    evaluated = counts.total - counts.not_applicable
    if evaluated <= 0:
        return 0.0
    return round(100.0 * counts.effective / evaluated, 2)


def monthly_point(as_of: date, statuses: Iterable[EntityStatus]) -> MonthlySeries:
    counts = count_statuses(statuses)
    return MonthlySeries(
        month=month_key(as_of),
        as_of=as_of,
        counts=counts,
        pct_in_target=pct_in_target(counts),
    )


def _is_critical_risk(entity: Optional[Entity]) -> bool:
    return bool(entity) and (entity.risk_classification or "").lower() in CRITICAL_RISK_CLASSES


def critical_entities(
    statuses: Iterable[EntityStatus],
    entities: Mapping[Tuple[str, int], Entity],
    *,
    page_size: Optional[int] = None,
) -> List[CriticalEntity]:
    """
    Out-of-standard entities with high/critical risk, most urgent first:
    due_date asc, priority desc, matched execution recency desc, id asc.
    """
    limit = CRITICAL_LIST_PAGE_SIZE if page_size is None else max(0, int(page_size))

    rows = []
    for s in statuses:
        entity = entities.get((s.kind, s.entity_id))
        if s.status != Status.OUT_OF_STANDARD or not _is_critical_risk(entity):
            continue
        rows.append((s, entity))

    # stable passes, least significant key first
    rows.sort(key=lambda r: r[0].entity_id)
    rows.sort(key=lambda r: r[0].matched_execution_created_at or datetime.min, reverse=True)
    rows.sort(key=lambda r: r[1].priority, reverse=True)
    rows.sort(key=lambda r: r[0].due_date or date.max)

    out: List[CriticalEntity] = []
    for s, entity in rows[:limit]:
        label, kind = STATUS_BADGES[s.status]
        out.append(
            CriticalEntity(
                entity_id=entity.id,
                kind=entity.kind,
                code=entity.code,
                name=entity.name,
                owner_name=entity.owner_name,
                risk_classification=entity.risk_classification,
                period_end=s.period_end,
                due_date=s.due_date,
                status=s.status.value,
                status_label=label,
                status_kind=kind,
            )
        )
    return out


def summarize(
    as_of: date,
    current: Sequence[EntityStatus],
    entities: Iterable[Entity],
    trend: Sequence[Tuple[date, Sequence[EntityStatus]]],
    *,
    scope: str = "all",
    executions_pending_review: int = 0,
    page_size: Optional[int] = None,
) -> DashboardSummary:
    """
    One pass over the same statuses for cards, trend and critical list so the
    numbers cannot drift apart. `trend` holds (as_of, statuses) per month; the
    output series is sorted oldest first.
    """
    current = ordered(current)
    by_key = {(e.kind, e.id): e for e in entities}

    controls = [e for e in by_key.values() if e.kind == "control"]
    kpis_out = sum(
        1 for s in current if s.kind == "kpi" and s.status == Status.OUT_OF_STANDARD
    )

    series = [monthly_point(d, ordered(sts)) for d, sts in sorted(trend, key=lambda t: t[0])]

    return DashboardSummary(
        as_of=as_of,
        scope=scope,
        counts=count_statuses(current),
        counts_by_kind={
            kind: count_statuses(s for s in current if s.kind == kind)
            for kind in ("control", "kpi")
        },
        critical_risk_count=sum(1 for e in controls if _is_critical_risk(e)),
        kpis_out_of_target=kpis_out,
        executions_pending_review=max(0, int(executions_pending_review or 0)),
        trend=series,
        critical=critical_entities(current, by_key, page_size=page_size),
    )
