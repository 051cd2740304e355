"""
Appointment store on top of a SQLAlchemy session
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, DependencyError
from ..models.appointment import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

DEFAULT_SORT = (Appointment.appointment_date.asc(), Appointment.created_at.asc(), Appointment.id.asc())


def build_filter(
    status: Optional[str] = None,
    test_type: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list:
    """
    Translate listing filters into SQLAlchemy criteria
    Search is a case-insensitive substring match over name, email and phone
    """
    criteria = []
    if status:
        criteria.append(Appointment.status == status)
    if test_type:
        criteria.append(Appointment.test_type == test_type)
    if search:
        criteria.append(or_(
            Appointment.name.icontains(search, autoescape=True),
            Appointment.email.icontains(search, autoescape=True),
            Appointment.phone.icontains(search, autoescape=True),
        ))
    if start_date is not None:
        criteria.append(Appointment.appointment_date >= start_date)
    if end_date is not None:
        criteria.append(Appointment.appointment_date <= end_date)
    return criteria


class AppointmentRepository:
    """Query and persistence operations for appointments"""

    def __init__(self, db: Session):
        self.db = db

    def find(
        self,
        criteria: Sequence = (),
        sort: Sequence = DEFAULT_SORT,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Appointment]:
        query = self.db.query(Appointment).filter(*criteria).order_by(*sort).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return self._run(query.all, "find")

    def count(self, criteria: Sequence = ()) -> int:
        return self._run(self.db.query(Appointment).filter(*criteria).count, "count")

    def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        return self._run(lambda: self.db.get(Appointment, appointment_id), "find_by_id")

    def find_one(self, criteria: Sequence) -> Optional[Appointment]:
        return self._run(self.db.query(Appointment).filter(*criteria).first, "find_one")

    def find_active_in_slot(self, appointment_date: datetime, test_type: str) -> Optional[Appointment]:
        """Non-cancelled appointment holding the slot, if any"""
        return self.find_one([
            Appointment.appointment_date == appointment_date,
            Appointment.test_type == test_type,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        ])

    def find_by_order_id(self, order_id: str) -> Optional[Appointment]:
        return self.find_one([Appointment.order_id == order_id])

    def insert(self, appointment: Appointment) -> Appointment:
        """
        Persist a new appointment
        A unique index violation means the slot was taken concurrently
        """
        try:
            self.db.add(appointment)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"Insert rejected by unique constraint: {appointment.test_type} at {appointment.appointment_date}"
            )
            raise ConflictError("slot already booked")
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to insert appointment")
            raise DependencyError("appointment store unavailable")
        self.db.refresh(appointment)
        return appointment

    def update(self, appointment_id: str, values: dict, from_statuses: Sequence[str]) -> bool:
        """
        Apply values only while the row is still in one of from_statuses
        Returns False when the status moved underneath the caller
        """
        try:
            updated = (
                self.db.query(Appointment)
                .filter(Appointment.id == appointment_id, Appointment.status.in_(from_statuses))
                .update(values, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to update appointment {appointment_id}")
            raise DependencyError("appointment store unavailable")
        return updated == 1

    def reload(self, appointment_id: str) -> Optional[Appointment]:
        """Fresh copy of the row, overwriting any stale state in the session"""
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id).populate_existing()
        return self._run(query.first, "reload")

    def delete(self, appointment: Appointment) -> None:
        try:
            self.db.delete(appointment)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"Failed to delete appointment {appointment.id}")
            raise DependencyError("appointment store unavailable")

    def _run(self, operation, name: str):
        try:
            return operation()
        except SQLAlchemyError:
            logger.exception(f"Appointment store {name} failed")
            raise DependencyError("appointment store unavailable")
