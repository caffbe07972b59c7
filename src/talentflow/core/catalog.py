"""
Closed set of application statuses and their static metadata.

Each status records whether it is terminal, whose queue it sits in, which
roles may see an application while it holds that status, and the coarse
label shown to the candidate.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from talentflow.core.errors import UnknownStatus
from talentflow.types import Role

# Entering any of these stamps reviewed_at once.
REVIEW_STATUSES: frozenset[str] = frozenset({"reviewing", "rejected", "accepted"})


@dataclass(frozen=True, slots=True)
class StatusDefinition:
    name: str
    is_terminal: bool
    owner_role: Role | None
    visible_to: frozenset[str]
    candidate_label: str
    candidate_color: str


def _status(
    name: str,
    *,
    terminal: bool = False,
    owner: Role | None,
    visible_to: Iterable[str],
    label: str,
    color: str,
) -> StatusDefinition:
    # Candidates follow their own application through every stage, admins see everything.
    roles = frozenset(visible_to) | {"admin", "candidate"}
    return StatusDefinition(
        name=name,
        is_terminal=terminal,
        owner_role=owner,
        visible_to=roles,
        candidate_label=label,
        candidate_color=color,
    )


DEFAULT_DEFINITIONS: tuple[StatusDefinition, ...] = (
    _status("pending", owner="recruiter", visible_to={"recruiter"}, label="En revisión", color="yellow"),
    _status(
        "injected_by_admin", owner="recruiter", visible_to={"recruiter"}, label="En revisión", color="yellow"
    ),
    _status("reviewing", owner="recruiter", visible_to={"recruiter"}, label="En revisión", color="yellow"),
    _status(
        "sent_to_specialist", owner="specialist", visible_to={"specialist"}, label="En proceso", color="blue"
    ),
    _status("evaluating", owner="specialist", visible_to={"specialist"}, label="En proceso", color="blue"),
    _status(
        "sent_to_company",
        owner="company",
        visible_to={"company", "specialist"},
        label="Enviado a empresa",
        color="purple",
    ),
    _status(
        "company_interested",
        owner="company",
        visible_to={"company"},
        label="Enviado a empresa",
        color="purple",
    ),
    _status("interviewed", owner="company", visible_to={"company"}, label="Entrevistado", color="indigo"),
    _status("accepted", terminal=True, owner=None, visible_to={"company"}, label="Aceptado", color="green"),
    _status(
        "rejected", terminal=True, owner=None, visible_to={"company"}, label="No seleccionado", color="gray"
    ),
    _status("discarded", terminal=True, owner=None, visible_to=(), label="No seleccionado", color="gray"),
    _status("archived", terminal=True, owner=None, visible_to=(), label="Archivado", color="gray"),
)


class StatusCatalog:
    def __init__(self, definitions: Iterable[StatusDefinition] = DEFAULT_DEFINITIONS):
        self._by_name: dict[str, StatusDefinition] = {}
        for definition in definitions:
            if definition.name in self._by_name:
                raise ValueError(f"duplicate status definition '{definition.name}'")
            self._by_name[definition.name] = definition

    def __contains__(self, status: object) -> bool:
        return status in self._by_name

    @property
    def statuses(self) -> tuple[str, ...]:
        return tuple(self._by_name)

    @property
    def terminal_statuses(self) -> frozenset[str]:
        return frozenset(name for name, item in self._by_name.items() if item.is_terminal)

    @property
    def open_statuses(self) -> frozenset[str]:
        return frozenset(name for name, item in self._by_name.items() if not item.is_terminal)

    def definition_of(self, status: str) -> StatusDefinition:
        try:
            return self._by_name[status]
        except KeyError:
            raise UnknownStatus(status) from None

    def is_terminal(self, status: str) -> bool:
        return self.definition_of(status).is_terminal

    def is_visible_to(self, status: str, role: str) -> bool:
        return role in self.definition_of(status).visible_to

    def label_for(self, status: str, viewer_role: str) -> str:
        definition = self.definition_of(status)
        if viewer_role == "candidate":
            return definition.candidate_label
        return definition.name

    def color_for(self, status: str, viewer_role: str) -> str:
        definition = self.definition_of(status)
        if viewer_role == "candidate":
            return definition.candidate_color
        return ""


STATUS_CATALOG = StatusCatalog()
