"""Transition table for the roommate application workflow.

``transition`` is pure: it reads a WorkflowState and returns the next one, or
raises. It knows nothing about who the caller is beyond the role they act as;
mapping users to roles is the coordinator's job.

    pending               tenant:approve     -> approved_by_tenant
    pending               applicant:cancel   -> cancelled
    approved_by_tenant    tenant:confirm     -> confirmed              (external room)
    approved_by_tenant    landlord:approve   -> approved_by_landlord   (platform room)
    approved_by_landlord  tenant:confirm     -> awaiting_confirmation
    awaiting_confirmation landlord:confirm   -> confirmed
    any open state        tenant:reject      -> rejected_by_tenant
    landlord round        landlord:reject    -> rejected_by_landlord
    any open state        system:timeout     -> expired
"""

from dataclasses import dataclass

from roomshare.domain.roommate.model.value import (
    Action,
    ActorRole,
    ApplicationStatus,
    WorkflowState,
)
from roomshare.domain.shared.error import AlreadyTerminal, InvalidTransition

S = ApplicationStatus


@dataclass(frozen=True)
class _Edge:
    role: ActorRole
    to: ApplicationStatus
    # None: either kind of room; True/False: only platform/external rooms
    platform: bool | None = None
    confirms: bool = False


_EDGES: dict[tuple[ApplicationStatus, Action], _Edge] = {
    (S.PENDING, Action.APPROVE): _Edge(ActorRole.TENANT, S.APPROVED_BY_TENANT),
    (S.PENDING, Action.CANCEL): _Edge(ActorRole.APPLICANT, S.CANCELLED),
    (S.APPROVED_BY_TENANT, Action.CONFIRM): _Edge(
        ActorRole.TENANT, S.CONFIRMED, platform=False, confirms=True
    ),
    (S.APPROVED_BY_TENANT, Action.APPROVE): _Edge(
        ActorRole.LANDLORD, S.APPROVED_BY_LANDLORD, platform=True
    ),
    (S.APPROVED_BY_LANDLORD, Action.CONFIRM): _Edge(
        ActorRole.TENANT, S.AWAITING_CONFIRMATION, platform=True, confirms=True
    ),
    (S.AWAITING_CONFIRMATION, Action.CONFIRM): _Edge(
        ActorRole.LANDLORD, S.CONFIRMED, platform=True, confirms=True
    ),
}

# States from which each party may still reject.
_REJECTABLE: dict[ActorRole, frozenset[ApplicationStatus]] = {
    ActorRole.TENANT: frozenset(
        {S.PENDING, S.APPROVED_BY_TENANT, S.APPROVED_BY_LANDLORD, S.AWAITING_CONFIRMATION}
    ),
    ActorRole.LANDLORD: frozenset(
        {S.APPROVED_BY_TENANT, S.APPROVED_BY_LANDLORD, S.AWAITING_CONFIRMATION}
    ),
}

_REJECTED_BY: dict[ActorRole, ApplicationStatus] = {
    ActorRole.TENANT: S.REJECTED_BY_TENANT,
    ActorRole.LANDLORD: S.REJECTED_BY_LANDLORD,
}


def has_confirmed(state: WorkflowState, role: ActorRole) -> bool:
    if role is ActorRole.TENANT:
        return state.confirmed_by_tenant
    if role is ActorRole.LANDLORD:
        return state.confirmed_by_landlord
    return False


def ready_to_provision(state: WorkflowState) -> bool:
    """Every party whose confirmation the room requires has confirmed."""
    return state.confirmed_by_tenant and (
        not state.is_platform_room or state.confirmed_by_landlord
    )


def transition(state: WorkflowState, action: Action, role: ActorRole) -> WorkflowState:
    """Compute the state reached by ``role`` performing ``action``.

    Returns ``state`` itself for a repeated confirmation.

    Raises:
        AlreadyTerminal: state is terminal.
        InvalidTransition: role does not own the edge, or no such edge exists.
    """
    status = state.status

    if action is Action.CONFIRM and has_confirmed(state, role):
        if not status.is_terminal or status is S.CONFIRMED:
            return state

    if status.is_terminal:
        raise AlreadyTerminal(f"Application is already {status}; '{action}' has no effect")

    if action is Action.TIMEOUT:
        if role is not ActorRole.SYSTEM:
            raise InvalidTransition(f"Only the system may expire an application, not {role}")
        return state.model_copy(update={"status": S.EXPIRED})

    if action is Action.REJECT:
        return _reject(state, role)

    edge = _EDGES.get((status, action))
    if edge is None:
        raise InvalidTransition(f"Cannot {action} an application in {status}")
    if edge.role is not role:
        raise InvalidTransition(f"'{action}' from {status} requires the {edge.role}, not {role}")
    if edge.platform is not None and edge.platform != state.is_platform_room:
        kind = "platform-managed" if edge.platform else "external"
        raise InvalidTransition(f"'{role}:{action}' from {status} applies only to {kind} rooms")

    update: dict[str, object] = {"status": edge.to}
    if edge.confirms:
        field = "confirmed_by_tenant" if role is ActorRole.TENANT else "confirmed_by_landlord"
        update[field] = True
    return state.model_copy(update=update)


def _reject(state: WorkflowState, role: ActorRole) -> WorkflowState:
    allowed = _REJECTABLE.get(role)
    if allowed is None:
        raise InvalidTransition(f"The {role} cannot reject an application")
    if role is ActorRole.LANDLORD and not state.is_platform_room:
        raise InvalidTransition("External rooms have no landlord round")
    if state.status not in allowed:
        raise InvalidTransition(f"The {role} cannot reject an application in {state.status}")
    return state.model_copy(update={"status": _REJECTED_BY[role]})
