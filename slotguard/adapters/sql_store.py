"""
SQLAlchemy-backed directory and appointment store.

Uniqueness of active claims is enforced by the database itself: a partial
unique index on (professional_id, date, time) restricted to active statuses.
A claim is a single INSERT; losing a race surfaces as an IntegrityError on
that index, which the store reports as a conflict. Any other integrity
violation (e.g. a foreign key) propagates. This holds across processes and
service instances, not just threads.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from datetime import date, time
from typing import Any, Dict, List, Optional

import pendulum
from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    create_engine,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from ..domain.models import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    OverrideKind,
    ProfessionalStatus,
    SlotKey,
)
from ..domain.schedule import Professional, ScheduleSpec

logger = logging.getLogger(__name__)

ACTIVE_SLOT_INDEX = "uq_appointments_active_slot"

_ACTIVE_VALUES = sorted(status.value for status in ACTIVE_STATUSES)
_ACTIVE_CLAUSE = text("status IN (" + ", ".join(f"'{value}'" for value in _ACTIVE_VALUES) + ")")
_SQLITE_SLOT_CONFLICT = "UNIQUE constraint failed: appointments.professional_id, appointments.date, appointments.time"


class Base(DeclarativeBase):
    pass


class ProfessionalRow(Base):
    __tablename__ = "professionals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), default=ProfessionalStatus.AVAILABLE.value)
    schedule: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)


class AppointmentRow(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    professional_id: Mapped[int] = mapped_column(ForeignKey("professionals.id"), index=True)
    date: Mapped[dt.date] = mapped_column(Date)
    time: Mapped[dt.time] = mapped_column(Time)
    status: Mapped[str] = mapped_column(String(20), default=AppointmentStatus.PENDING.value)
    override: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index(
            ACTIVE_SLOT_INDEX,
            "professional_id",
            "date",
            "time",
            unique=True,
            sqlite_where=_ACTIVE_CLAUSE,
            postgresql_where=_ACTIVE_CLAUSE,
        ),
        Index("ix_appointments_professional_date", "professional_id", "date"),
    )

    def to_domain(self) -> Appointment:
        return Appointment(
            id=self.id,
            professional_id=self.professional_id,
            date=self.date,
            time=self.time,
            status=AppointmentStatus(self.status),
            payload=dict(self.payload or {}),
            override=OverrideKind(self.override) if self.override else None,
            created_at=self.created_at,
        )


def create_db_engine(database_url: str, **kwargs: Any) -> Engine:
    """Create an engine; SQLite connections are allowed to cross worker threads."""
    if database_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", 30)
        kwargs["connect_args"] = connect_args
    return create_engine(database_url, **kwargs)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


class _SqlAdapter:
    """Runs blocking session work in a worker thread."""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    async def _run(self, func, *args):
        return await asyncio.to_thread(func, *args)


class SqlProfessionalDirectory(_SqlAdapter):
    """
    Directory reading the ``professionals`` table.

    Stored schedules are validated on every load; a malformed schedule raises
    an InvalidSchedule error instead of being treated as unrestricted.
    """

    async def get_professional(self, professional_id: int) -> Optional[Professional]:
        return await self._run(self._get_professional, professional_id)

    def _get_professional(self, professional_id: int) -> Optional[Professional]:
        with self._session_factory() as session:
            row = session.get(ProfessionalRow, professional_id)
            if row is None:
                return None
            return _row_to_professional(row)

    def list_professionals(self) -> List[Professional]:
        with self._session_factory() as session:
            rows = session.scalars(select(ProfessionalRow).order_by(ProfessionalRow.id)).all()
            return [_row_to_professional(row) for row in rows]

    def upsert(self, professional: Professional) -> None:
        with self._session_factory() as session:
            session.merge(
                ProfessionalRow(
                    id=professional.id,
                    name=professional.name,
                    status=professional.status.value,
                    schedule=professional.schedule.to_raw(),
                )
            )
            session.commit()


def _row_to_professional(row: ProfessionalRow) -> Professional:
    return Professional(
        id=row.id,
        name=row.name,
        status=ProfessionalStatus(row.status),
        schedule=ScheduleSpec.from_raw(row.schedule),
    )


class SqlAppointmentStore(_SqlAdapter):
    """Appointment store over the ``appointments`` table."""

    def __init__(self, engine: Engine, timezone: str = "UTC"):
        super().__init__(engine)
        self._timezone = timezone

    async def query_active_appointments(
        self,
        professional_id: int,
        date_from: date,
        date_to: date,
    ) -> List[SlotKey]:
        return await self._run(self._query_active, professional_id, date_from, date_to)

    def _query_active(self, professional_id: int, date_from: date, date_to: date) -> List[SlotKey]:
        statement = (
            select(AppointmentRow.date, AppointmentRow.time)
            .where(
                AppointmentRow.professional_id == professional_id,
                AppointmentRow.date >= _plain_date(date_from),
                AppointmentRow.date <= _plain_date(date_to),
                AppointmentRow.status.in_(_ACTIVE_VALUES),
            )
            .order_by(AppointmentRow.date, AppointmentRow.time)
        )
        # a single SELECT is one consistent snapshot of the table
        with self._session_factory() as session:
            return [SlotKey(date=day, time=moment) for day, moment in session.execute(statement)]

    async def insert_if_absent(
        self,
        professional_id: int,
        day: date,
        moment: time,
        payload: Dict[str, Any],
        override: Optional[OverrideKind] = None,
    ) -> Optional[Appointment]:
        return await self._run(self._insert_if_absent, professional_id, day, moment, payload, override)

    def _insert_if_absent(
        self,
        professional_id: int,
        day: date,
        moment: time,
        payload: Dict[str, Any],
        override: Optional[OverrideKind],
    ) -> Optional[Appointment]:
        row = AppointmentRow(
            professional_id=professional_id,
            date=_plain_date(day),
            time=moment.replace(second=0, microsecond=0),
            status=AppointmentStatus.PENDING.value,
            override=override.value if override else None,
            payload=dict(payload),
            created_at=pendulum.now(self._timezone),
        )
        with self._session_factory() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if not _is_slot_conflict(exc):
                    raise
                logger.debug("Unique index rejected claim %s %s for professional %s", day, moment, professional_id)
                return None
            return row.to_domain()

    async def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return await self._run(self._get_appointment, appointment_id)

    def _get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        with self._session_factory() as session:
            row = session.get(AppointmentRow, appointment_id)
            return row.to_domain() if row else None

    async def set_status(self, appointment_id: int, status: AppointmentStatus) -> Optional[Appointment]:
        return await self._run(self._set_status, appointment_id, status)

    def _set_status(self, appointment_id: int, status: AppointmentStatus) -> Optional[Appointment]:
        with self._session_factory() as session:
            row = session.get(AppointmentRow, appointment_id)
            if row is None:
                raise KeyError(appointment_id)
            row.status = status.value
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if not _is_slot_conflict(exc):
                    raise
                return None
            return row.to_domain()

    def seed(
        self,
        professional_id: int,
        day: date,
        moment: time,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Appointment:
        """Insert an appointment directly, e.g. for fixtures. IntegrityError propagates."""
        with self._session_factory() as session:
            row = AppointmentRow(
                professional_id=professional_id,
                date=_plain_date(day),
                time=moment.replace(second=0, microsecond=0),
                status=status.value,
                payload=dict(payload or {}),
                created_at=pendulum.now(self._timezone),
            )
            session.add(row)
            session.commit()
            return row.to_domain()


def _plain_date(value: date) -> date:
    # the SQLite Date type only accepts exact datetime.date instances
    return date(value.year, value.month, value.day)


def _is_slot_conflict(exc: IntegrityError) -> bool:
    """True when ``exc`` was raised by the active-slot unique index, not another constraint."""
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint is not None:
        return constraint == ACTIVE_SLOT_INDEX
    # SQLite names the indexed columns instead of the index
    message = str(exc.orig)
    return ACTIVE_SLOT_INDEX in message or _SQLITE_SLOT_CONFLICT in message
