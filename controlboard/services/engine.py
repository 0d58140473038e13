# controlboard/services/engine.py
"""
Compliance Period & Status Engine.

Pure over its inputs: every entry point takes an explicit `as_of`; the only I/O
goes through the injected ComplianceStore. Independent entities are evaluated
on a bounded thread pool and merged in a fixed order, so the output never
depends on completion order.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from controlboard.core.config import ENGINE_MAX_WORKERS, TREND_MONTHS
from controlboard.core.exceptions import DateArithmeticOverflow
from controlboard.core.scoping import ScopeFilter
from controlboard.schemas.compliance import (
    ControlRollup,
    Entity,
    EntityStatus,
    Execution,
    PeriodOverride,
)
from controlboard.schemas.dashboard import DashboardSummary, MonthlySeries
from controlboard.services.aggregator import monthly_point, ordered, summarize
from controlboard.services.classifier import classify, control_status, rollup_control
from controlboard.services.matcher import match_execution
from controlboard.services.periods import (
    add_months,
    is_applicable,
    month_end,
    month_key,
    reporting_month,
    resolve_override,
    resolve_period,
    validate_as_of,
)

log = logging.getLogger("controlboard.engine")


class ComplianceStore(Protocol):
    """Read contract over controls, KPIs and executions (owned elsewhere)."""

    def list_visible_controls(
        self, scope_filter: ScopeFilter, framework_id: Optional[int] = None
    ) -> List[Entity]:
        ...

    def list_visible_kpis_for_control(self, control_id: int) -> List[Entity]:
        ...

    def list_executions(
        self, kind: str, entity_id: int, period_end: Optional[date] = None
    ) -> List[Execution]:
        ...

    def count_executions_pending_review(
        self, control_ids: Optional[Sequence[int]], period_from: date, period_to: date
    ) -> int:
        ...


def trend_dates(as_of: date, months_back: int) -> List[date]:
    """
    as_of dates for a trailing series, oldest first: month-end of each earlier
    month, then `as_of` itself for the current month.
    """
    validate_as_of(as_of)
    if months_back < 1:
        raise DateArithmeticOverflow(f"months_back must be >= 1, got {months_back}.")
    out: List[date] = []
    for k in range(months_back - 1, 0, -1):
        y, m = add_months(as_of.year, as_of.month, -k)
        out.append(validate_as_of(month_end(y, m)))
    out.append(as_of)
    return out


class ComplianceEngine:
    def __init__(
        self,
        store: ComplianceStore,
        *,
        max_workers: Optional[int] = None,
        page_size: Optional[int] = None,
        trend_months: Optional[int] = None,
    ) -> None:
        self.store = store
        self.max_workers = max(1, int(max_workers or ENGINE_MAX_WORKERS))
        self.page_size = page_size
        self.trend_months = int(trend_months or TREND_MONTHS)

    # ---- single entity -------------------------------------------------------
    def evaluate_entity(
        self,
        entity: Entity,
        as_of: date,
        override: Optional[PeriodOverride] = None,
        *,
        gated: bool = True,
    ) -> EntityStatus:
        """
        Status of one entity for one period. `gated` applies the anchor-month
        rule used by the control detail and KPI views; the dashboard passes
        gated=False and classifies purely against the due date.
        """
        validate_as_of(as_of)

        if override is not None:
            expected = resolve_override(entity.id, entity.cadence, override)
            month = reporting_month(expected.period_end) if expected else as_of.month
        else:
            expected = resolve_period(entity.id, entity.cadence, as_of)
            month = as_of.month

        applicable = is_applicable(entity.cadence, month) if gated else True

        execution: Optional[Execution] = None
        if applicable and expected is not None:
            rows = self.store.list_executions(entity.kind, entity.id, expected.period_end)
            execution = match_execution(rows, expected.period_end)

        return classify(entity, expected, execution, as_of, applicable=applicable)

    # ---- fan-out -------------------------------------------------------------
    def _evaluate_pairs(
        self,
        pairs: Sequence[Tuple[Entity, date]],
        override: Optional[PeriodOverride] = None,
        *,
        gated: bool = True,
    ) -> List[EntityStatus]:
        if not pairs:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(self.evaluate_entity, entity, d, override, gated=gated)
                for entity, d in pairs
            ]
            # result() re-raises worker errors in the caller
            return [f.result() for f in futures]

    def evaluate_entities(
        self,
        entities: Sequence[Entity],
        as_of: date,
        override: Optional[PeriodOverride] = None,
    ) -> List[EntityStatus]:
        validate_as_of(as_of)
        return ordered(self._evaluate_pairs([(e, as_of) for e in entities], override))

    def _kpis_by_control(self, entities: Sequence[Entity]) -> Dict[int, List[Entity]]:
        """
        KPIs per control in `entities`. Controls listed without their KPIs get
        them from the store; a control with none is graded on its own executions.
        """
        listed: Dict[int, List[Entity]] = {}
        for e in entities:
            if e.kind == "kpi" and e.control_id is not None:
                listed.setdefault(e.control_id, []).append(e)

        missing = [e for e in entities if e.kind == "control" and e.id not in listed]
        for control, kpis in zip(missing, self._list_kpis_per_control(missing)):
            if kpis:
                listed[control.id] = kpis
        return {cid: sorted(kpis, key=lambda k: k.id) for cid, kpis in listed.items()}

    def _evaluate_series(
        self, entities: Sequence[Entity], dates: Sequence[date]
    ) -> List[Tuple[date, List[EntityStatus]]]:
        """
        Dashboard statuses per date. A control with KPIs gets the same
        worst-KPI-wins status as its detail view.
        """
        kpis_by_control = self._kpis_by_control(entities)
        folded = {
            e.id for e in entities if e.kind == "control" and e.id in kpis_by_control
        }
        graded: Dict[Tuple[str, int], Entity] = {}
        for e in entities:
            if not (e.kind == "control" and e.id in folded):
                graded[(e.kind, e.id)] = e
        for cid in folded:
            for k in kpis_by_control[cid]:
                graded.setdefault((k.kind, k.id), k)

        leaves = [graded[key] for key in sorted(graded)]
        results = self._evaluate_pairs([(e, d) for d in dates for e in leaves], gated=False)

        n = len(leaves)
        out: List[Tuple[date, List[EntityStatus]]] = []
        for i, d in enumerate(dates):
            by_key = {(s.kind, s.entity_id): s for s in results[i * n:(i + 1) * n]}
            statuses: Dict[Tuple[str, int], EntityStatus] = {}
            for e in entities:
                if e.kind == "control" and e.id in folded:
                    kpi_statuses = [by_key[("kpi", k.id)] for k in kpis_by_control[e.id]]
                    statuses[(e.kind, e.id)] = control_status(
                        e, resolve_period(e.id, e.cadence, d), kpi_statuses
                    )
                else:
                    statuses[(e.kind, e.id)] = by_key[(e.kind, e.id)]
            out.append((d, ordered(statuses.values())))
        return out

    # ---- portfolio -----------------------------------------------------------
    def evaluate_trend(
        self,
        entities: Sequence[Entity],
        as_of: date,
        months_back: Optional[int] = None,
    ) -> List[MonthlySeries]:
        dates = trend_dates(as_of, months_back or self.trend_months)
        return [monthly_point(d, sts) for d, sts in self._evaluate_series(entities, dates)]

    def evaluate_portfolio(
        self,
        entities: Sequence[Entity],
        as_of: date,
        *,
        scope: str = "custom",
        executions_pending_review: int = 0,
        page_size: Optional[int] = None,
    ) -> DashboardSummary:
        dates = trend_dates(as_of, self.trend_months)
        series = self._evaluate_series(entities, dates)
        current = series[-1][1]

        summary = summarize(
            as_of,
            current,
            entities,
            series,
            scope=scope,
            executions_pending_review=executions_pending_review,
            page_size=self.page_size if page_size is None else page_size,
        )
        log.info(
            "portfolio evaluated as_of=%s scope=%s entities=%d overdue=%d out_of_standard=%d",
            as_of,
            scope,
            len(entities),
            summary.counts.overdue,
            summary.counts.out_of_standard,
        )
        return summary

    def evaluate_scope(
        self,
        scope_filter: ScopeFilter,
        as_of: date,
        *,
        framework_id: Optional[int] = None,
    ) -> DashboardSummary:
        """List the visible portfolio through the store, then evaluate it."""
        validate_as_of(as_of)
        # ScopeResolutionFailure propagates: the whole request fails
        controls = self.store.list_visible_controls(scope_filter, framework_id)
        kpis = self.list_kpis(controls)
        y, m = add_months(as_of.year, as_of.month, -1)
        pending_review = self.store.count_executions_pending_review(
            [c.id for c in controls], date(y, m, 1), month_end(y, m)
        )
        return self.evaluate_portfolio(
            list(controls) + kpis,
            as_of,
            scope=scope_filter.name,
            executions_pending_review=pending_review,
        )

    def _list_kpis_per_control(self, controls: Sequence[Entity]) -> List[List[Entity]]:
        if not controls:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(lambda c: self.store.list_visible_kpis_for_control(c.id), controls))

    def list_kpis(self, controls: Sequence[Entity]) -> List[Entity]:
        chunks = self._list_kpis_per_control(controls)
        return sorted((k for chunk in chunks for k in chunk), key=lambda k: k.id)

    # ---- control detail ------------------------------------------------------
    def evaluate_control(
        self,
        control: Entity,
        kpis: Optional[Sequence[Entity]],
        as_of: date,
        override: Optional[PeriodOverride] = None,
    ) -> ControlRollup:
        """
        Control status folded from its KPIs for the evaluated month.
        `kpis=None` lists them through the store.
        """
        validate_as_of(as_of)
        if kpis is None:
            kpis = self.store.list_visible_kpis_for_control(control.id)

        if override is not None and override.month:
            month_label = override.month
            expected = resolve_override(control.id, control.cadence, override)
            month = reporting_month(expected.period_end) if expected else as_of.month
        elif override is not None and override.period_end is not None:
            month_label = month_key(override.period_end)
            month = reporting_month(override.period_end)
        else:
            month_label = month_key(as_of)
            month = as_of.month

        statuses = self.evaluate_entities(kpis, as_of, override)
        return rollup_control(
            control,
            statuses,
            month_label,
            applicable=is_applicable(control.cadence, month),
        )
