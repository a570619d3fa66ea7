"""Role hierarchy for authorization."""

from enum import IntEnum


class Role(IntEnum):
    """Hierarchical roles with numeric ordering.

    Higher values inherit all permissions of lower values.
    Party roles on a single application (applicant, tenant, landlord) are
    resolved per record by the coordinator, not by this hierarchy.
    """

    PUBLIC = 0
    USER = 10
    LANDLORD = 20
    ADMIN = 30
