from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, func, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roomshare.domain.auth.model.value import UserId
from roomshare.domain.roommate.model.aggregate import RoommateApplication
from roomshare.domain.roommate.model.value import (
    OPEN_STATUSES,
    TERMINAL_STATUSES,
    ApplicationFilter,
    ApplicationId,
    ApplicationStatus,
    PostId,
    ResponseLogEntry,
)
from roomshare.domain.roommate.port.repository import ApplicationRepository
from roomshare.domain.shared.error import (
    AlreadyTerminal,
    ConcurrentModification,
    ConflictError,
    NotFoundError,
    StorageUnavailableError,
)
from roomshare.infrastructure.persistence.mappers.application import (
    application_to_dict,
    response_to_dict,
    row_to_application,
    row_to_response,
)
from roomshare.infrastructure.persistence.tables import (
    application_responses_table,
    roommate_applications_table,
)

t = roommate_applications_table

# Frozen at submission; never part of an UPDATE.
_IMMUTABLE = frozenset(
    {
        "id",
        "post_id",
        "applicant_id",
        "tenant_id",
        "landlord_id",
        "is_platform_room",
        "created_at",
        "expires_at",
        "rental_id",
    }
)

_LANDLORD_ROUND = (ApplicationStatus.APPROVED_BY_TENANT, ApplicationStatus.AWAITING_CONFIRMATION)

_TERMINAL_VALUES = sorted(s.value for s in TERMINAL_STATUSES)
_OPEN_VALUES = sorted(s.value for s in OPEN_STATUSES)


class SQLAlchemyApplicationRepository(ApplicationRepository):
    """SQLAlchemy implementation of ApplicationRepository.

    Writes are conditional UPDATEs; correctness across processes comes from
    the WHERE clause, never from in-process locking.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, id: ApplicationId) -> RoommateApplication | None:
        result = await self._execute(select(t).where(t.c.id == str(id)))
        row = result.mappings().first()
        return row_to_application(dict(row)) if row else None

    async def add(self, application: RoommateApplication) -> None:
        await self._execute(insert(t).values(**application_to_dict(application)))

    async def compare_and_swap(
        self, application: RoommateApplication, expected_version: int
    ) -> None:
        values = {
            k: v for k, v in application_to_dict(application).items() if k not in _IMMUTABLE
        }
        stmt = (
            update(t)
            .where(
                t.c.id == str(application.id),
                t.c.version == expected_version,
                t.c.rental_id.is_(None),
                t.c.status.notin_(_TERMINAL_VALUES),
            )
            .values(**values)
        )
        result = await self._execute(stmt)
        if result.rowcount != 1:
            await self._raise_lost_write(application.id, expected_version)

    async def attach_rental(
        self, application: RoommateApplication, expected_version: int
    ) -> None:
        if application.rental_id is None:
            raise ValueError("attach_rental requires application.rental_id")
        stmt = (
            update(t)
            .where(
                t.c.id == str(application.id),
                t.c.version == expected_version,
                t.c.rental_id.is_(None),
                t.c.status == ApplicationStatus.CONFIRMED.value,
            )
            .values(
                rental_id=str(application.rental_id),
                version=application.version,
                updated_at=application.updated_at,
            )
        )
        result = await self._execute(stmt)
        if result.rowcount == 1:
            return

        current = await self._current(application.id)
        if current is None:
            raise NotFoundError(f"Application not found: {application.id}")
        if current["rental_id"] is not None:
            raise ConflictError(
                f"Application {application.id} already has rental {current['rental_id']}"
            )
        raise ConcurrentModification(
            f"Application {application.id} changed (version {current['version']}, "
            f"expected {expected_version})"
        )

    async def append_response(self, entry: ResponseLogEntry) -> None:
        await self._execute(insert(application_responses_table).values(**response_to_dict(entry)))

    async def list_responses(self, id: ApplicationId) -> list[ResponseLogEntry]:
        r = application_responses_table
        stmt = select(r).where(r.c.application_id == str(id)).order_by(r.c.version.asc())
        result = await self._execute(stmt)
        return [row_to_response(dict(row)) for row in result.mappings().all()]

    async def find_open(
        self, post_id: PostId, applicant_id: UserId
    ) -> RoommateApplication | None:
        stmt = select(t).where(
            t.c.post_id == str(post_id),
            t.c.applicant_id == str(applicant_id),
            t.c.status.in_(_OPEN_VALUES),
        )
        result = await self._execute(stmt.limit(1))
        row = result.mappings().first()
        return row_to_application(dict(row)) if row else None

    async def list_for_applicant(
        self, applicant_id: UserId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]:
        return await self._page([t.c.applicant_id == str(applicant_id)], filter)

    async def list_for_post(
        self, post_id: PostId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]:
        return await self._page([t.c.post_id == str(post_id)], filter)

    async def list_for_tenant(
        self, tenant_id: UserId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]:
        return await self._page([t.c.tenant_id == str(tenant_id)], filter)

    async def list_pending_for_landlord(
        self, landlord_id: UserId, filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]:
        conditions = [
            t.c.landlord_id == str(landlord_id),
            t.c.is_platform_room.is_(True),
            t.c.status.in_([s.value for s in _LANDLORD_ROUND]),
        ]
        return await self._page(conditions, filter)

    async def list_lapsed(self, now: datetime, limit: int) -> list[RoommateApplication]:
        stmt = (
            select(t)
            .where(t.c.status.in_(_OPEN_VALUES), t.c.expires_at <= now)
            .order_by(t.c.expires_at.asc())
            .limit(limit)
        )
        result = await self._execute(stmt)
        return [row_to_application(dict(row)) for row in result.mappings().all()]

    async def count_by_status(
        self,
        *,
        applicant_id: UserId | None = None,
        tenant_id: UserId | None = None,
    ) -> dict[ApplicationStatus, int]:
        stmt = select(t.c.status, func.count()).group_by(t.c.status)
        if applicant_id is not None:
            stmt = stmt.where(t.c.applicant_id == str(applicant_id))
        if tenant_id is not None:
            stmt = stmt.where(t.c.tenant_id == str(tenant_id))
        result = await self._execute(stmt)
        return {ApplicationStatus(status): count for status, count in result.all()}

    async def _page(
        self, conditions: list[ColumnElement[bool]], filter: ApplicationFilter
    ) -> tuple[list[RoommateApplication], int]:
        if filter.status is not None:
            conditions = [*conditions, t.c.status == filter.status.value]

        count_stmt = select(func.count()).select_from(t).where(*conditions)
        total = (await self._execute(count_stmt)).scalar_one()

        stmt = (
            select(t)
            .where(*conditions)
            .order_by(t.c.created_at.desc(), t.c.id.asc())
            .offset(filter.offset)
            .limit(filter.limit)
        )
        result = await self._execute(stmt)
        return [row_to_application(dict(row)) for row in result.mappings().all()], total

    async def _current(self, id: ApplicationId) -> dict[str, Any] | None:
        stmt = select(t.c.status, t.c.version, t.c.rental_id).where(t.c.id == str(id))
        row = (await self._execute(stmt)).mappings().first()
        return dict(row) if row else None

    async def _raise_lost_write(self, id: ApplicationId, expected_version: int) -> None:
        current = await self._current(id)
        if current is None:
            raise NotFoundError(f"Application not found: {id}")
        status = ApplicationStatus(current["status"])
        if status.is_terminal:
            raise AlreadyTerminal(f"Application {id} is already {status}")
        raise ConcurrentModification(
            f"Application {id} changed (version {current['version']}, expected {expected_version})"
        )

    async def _execute(self, stmt: Any) -> Any:
        try:
            return await self.session.execute(stmt)
        except IntegrityError as e:
            raise ConflictError(f"Constraint violated: {e.orig}") from e
        except DBAPIError as e:
            raise StorageUnavailableError(f"Database unavailable: {e.orig}") from e
