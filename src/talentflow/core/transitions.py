"""
Declarative transition table for the application lifecycle.

Every write path consults this table; no caller special-cases a transition.
Rules are expressed per (role, from_status) and compiled into edges that
carry the roles allowed to take them and an optional named precondition.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from talentflow.core.catalog import STATUS_CATALOG, StatusCatalog
from talentflow.types import DenialReason, PreconditionPolicy, TransitionWarning

logger = logging.getLogger(__name__)

SPECIALIST_LINKED = "specialist_linked"

ROLE_RULES: dict[tuple[str, str], frozenset[str]] = {
    ("recruiter", "pending"): frozenset({"reviewing", "discarded"}),
    ("recruiter", "injected_by_admin"): frozenset({"reviewing", "discarded"}),
    ("recruiter", "reviewing"): frozenset({"sent_to_specialist", "discarded"}),
    ("specialist", "sent_to_specialist"): frozenset({"evaluating", "sent_to_company", "discarded"}),
    ("specialist", "evaluating"): frozenset({"sent_to_company", "discarded"}),
    ("company", "sent_to_company"): frozenset({"company_interested", "interviewed", "rejected"}),
    ("company", "company_interested"): frozenset({"interviewed", "accepted", "rejected"}),
    ("company", "interviewed"): frozenset({"accepted", "rejected"}),
}

ADMIN_OVERRIDE_TARGETS: frozenset[str] = frozenset({"reviewing", "discarded", "archived"})

EDGE_PRECONDITIONS: dict[tuple[str, str], str] = {
    ("reviewing", "sent_to_specialist"): SPECIALIST_LINKED,
}


@dataclass(frozen=True, slots=True)
class TransitionEdge:
    from_status: str
    to_status: str
    allowed_roles: frozenset[str]
    precondition: str | None = None


@dataclass(slots=True)
class TransitionContext:
    """External facts needed to evaluate edge preconditions."""

    job_id: int
    specialist_linked: bool = True
    precondition_policy: PreconditionPolicy = "warn"


@dataclass(slots=True)
class TransitionCheck:
    allowed: bool
    reason: DenialReason | None = None
    message: str = ""
    warnings: list[TransitionWarning] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Precondition:
    name: str
    predicate: Callable[[TransitionContext], bool]
    failure_message: str
    warning_code: str


PRECONDITIONS: dict[str, Precondition] = {
    SPECIALIST_LINKED: Precondition(
        name=SPECIALIST_LINKED,
        predicate=lambda context: context.specialist_linked,
        failure_message="No specialist is assigned to this job yet; ask an admin to assign one",
        warning_code="needs_assignment",
    ),
}


def build_edges(catalog: StatusCatalog = STATUS_CATALOG) -> list[TransitionEdge]:
    roles_by_pair: dict[tuple[str, str], set[str]] = {}

    for (role, from_status), targets in ROLE_RULES.items():
        for to_status in targets:
            roles_by_pair.setdefault((from_status, to_status), set()).add(role)

    for from_status in catalog.open_statuses:
        for to_status in ADMIN_OVERRIDE_TARGETS:
            if to_status != from_status:
                roles_by_pair.setdefault((from_status, to_status), set()).add("admin")

    edges = []
    for (from_status, to_status), roles in sorted(roles_by_pair.items()):
        catalog.definition_of(to_status)
        if catalog.is_terminal(from_status):
            raise ValueError(f"terminal status '{from_status}' cannot have outbound edges")
        edges.append(
            TransitionEdge(
                from_status=from_status,
                to_status=to_status,
                allowed_roles=frozenset(roles),
                precondition=EDGE_PRECONDITIONS.get((from_status, to_status)),
            )
        )
    return edges


class TransitionTable:
    def __init__(
        self,
        edges: Iterable[TransitionEdge] | None = None,
        *,
        catalog: StatusCatalog = STATUS_CATALOG,
    ):
        self.catalog = catalog
        self._edges: dict[tuple[str, str], TransitionEdge] = {}
        for edge in edges if edges is not None else build_edges(catalog):
            if catalog.is_terminal(edge.from_status):
                raise ValueError(f"terminal status '{edge.from_status}' cannot have outbound edges")
            self._edges[(edge.from_status, edge.to_status)] = edge

    @property
    def edges(self) -> list[TransitionEdge]:
        return list(self._edges.values())

    def edge(self, from_status: str, to_status: str) -> TransitionEdge | None:
        return self._edges.get((from_status, to_status))

    def allowed_targets(self, role: str, from_status: str) -> frozenset[str]:
        if self.catalog.is_terminal(from_status):
            return frozenset()
        return frozenset(
            edge.to_status
            for edge in self._edges.values()
            if edge.from_status == from_status and role in edge.allowed_roles
        )

    def can_transition(
        self,
        role: str,
        from_status: str,
        to_status: str,
        context: TransitionContext,
    ) -> TransitionCheck:
        from_definition = self.catalog.definition_of(from_status)
        self.catalog.definition_of(to_status)

        # Messages reach the caller, so statuses are named the way this role sees them.
        label = self.catalog.label_for
        if from_definition.is_terminal:
            return TransitionCheck(
                allowed=False,
                reason="terminal_state",
                message=(
                    f"This application is already closed (status '{label(from_status, role)}') "
                    "and can no longer change"
                ),
            )

        if to_status not in self.allowed_targets(role, from_status):
            targets = sorted(self.allowed_targets(role, from_status))
            hint = f"; allowed targets: {', '.join(targets)}" if targets else ""
            return TransitionCheck(
                allowed=False,
                reason="not_an_allowed_edge",
                message=(
                    f"Role '{role}' may not move an application from '{label(from_status, role)}' "
                    f"to '{label(to_status, role)}'{hint}"
                ),
            )

        edge = self._edges[(from_status, to_status)]
        if edge.precondition is None:
            return TransitionCheck(allowed=True)

        precondition = PRECONDITIONS[edge.precondition]
        if precondition.predicate(context):
            return TransitionCheck(allowed=True)

        if context.precondition_policy == "block":
            return TransitionCheck(
                allowed=False,
                reason="precondition_failed",
                message=precondition.failure_message,
            )

        logger.info(
            "Precondition %s unmet for job_id=%s %s->%s; proceeding with warning",
            precondition.name,
            context.job_id,
            from_status,
            to_status,
        )
        return TransitionCheck(
            allowed=True,
            warnings=[TransitionWarning(code=precondition.warning_code, message=precondition.failure_message)],
        )


TRANSITION_TABLE = TransitionTable()
