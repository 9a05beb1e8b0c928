"""Booking repository - Database operations for bookings and booking notifications"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...constants import ROLE_PROVIDER, SERVICE_ACTIVE
from ...models import Booking, BookingNotification, Service, User


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_active_service(db: Session, service_id: int) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.is_active.is_(True), Service.status == SERVICE_ACTIVE)
            .first()
        )

    @staticmethod
    def get_provider(db: Session, provider_id: int) -> Optional[User]:
        return (
            db.query(User)
            .options(joinedload(User.provider_profile))
            .filter(User.id == provider_id, User.role == ROLE_PROVIDER, User.is_deleted.is_(False))
            .first()
        )

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(
                joinedload(Booking.service),
                joinedload(Booking.provider).joinedload(User.provider_profile),
                joinedload(Booking.customer),
            )
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def get_booking_by_number(db: Session, booking_number: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.booking_number == booking_number.strip().upper()).first()

    @staticmethod
    def count_numbers_for_day(db: Session, day: date) -> int:
        """Bookings whose number carries the given date segment"""
        return db.query(Booking).filter(Booking.booking_number.like(f"%-{day.strftime('%Y%m%d')}-%")).count()

    @staticmethod
    def booking_number_exists(db: Session, booking_number: str) -> bool:
        return db.query(Booking.id).filter(Booking.booking_number == booking_number).first() is not None

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def list_query(
        db: Session,
        customer_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ):
        query = db.query(Booking).options(
            joinedload(Booking.service),
            joinedload(Booking.provider).joinedload(User.provider_profile),
            joinedload(Booking.customer),
        )
        if customer_id is not None:
            query = query.filter(Booking.customer_id == customer_id)
        if provider_id is not None:
            query = query.filter(Booking.provider_id == provider_id)
        if status:
            query = query.filter(Booking.status == status)
        if start_date:
            query = query.filter(Booking.scheduled_date >= start_date)
        if end_date:
            query = query.filter(Booking.scheduled_date <= end_date)
        return query.order_by(Booking.created_at.desc(), Booking.id.desc())

    # ========================================================================
    # NOTIFICATIONS
    # ========================================================================

    @staticmethod
    def add_notification(
        db: Session,
        recipient_id: int,
        booking_id: int,
        notification_type: str,
        title: str,
        message: str,
    ) -> BookingNotification:
        notification = BookingNotification(
            recipient_id=recipient_id,
            booking_id=booking_id,
            type=notification_type,
            title=title,
            message=message,
        )
        db.add(notification)
        return notification

    @staticmethod
    def notifications_query(db: Session, recipient_id: int, unread_only: bool = False):
        query = db.query(BookingNotification).filter(BookingNotification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(BookingNotification.is_read.is_(False))
        return query.order_by(BookingNotification.created_at.desc(), BookingNotification.id.desc())

    @staticmethod
    def count_unread(db: Session, recipient_id: int) -> int:
        return (
            db.query(BookingNotification)
            .filter(BookingNotification.recipient_id == recipient_id, BookingNotification.is_read.is_(False))
            .count()
        )

    @staticmethod
    def get_notification(db: Session, notification_id: int, recipient_id: int) -> Optional[BookingNotification]:
        return (
            db.query(BookingNotification)
            .filter(BookingNotification.id == notification_id, BookingNotification.recipient_id == recipient_id)
            .first()
        )

    @staticmethod
    def mark_all_read(db: Session, recipient_id: int) -> int:
        return (
            db.query(BookingNotification)
            .filter(BookingNotification.recipient_id == recipient_id, BookingNotification.is_read.is_(False))
            .update({"is_read": True, "read_at": datetime.utcnow()}, synchronize_session=False)
        )
