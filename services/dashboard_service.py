"""Функции для получения сводной информации на дашборд."""

from datetime import date, timedelta

from peewee import Case, fn

from database.models import Booking, BookingStatus, Client, Trip, TripStatus, Vendor


def get_dashboard_counters() -> dict:
    """Вернуть агрегированные счётчики сущностей и бронирований."""

    pending_case = Case(
        None,
        ((Booking.booking_status == BookingStatus.PENDING.value, 1),),
        0,
    )
    confirmed_case = Case(
        None,
        ((Booking.booking_status == BookingStatus.CONFIRMED.value, 1),),
        0,
    )
    canceled_case = Case(
        None,
        ((Booking.booking_status == BookingStatus.CANCELED.value, 1),),
        0,
    )

    query = Booking.select(
        fn.COALESCE(fn.COUNT(Booking.id), 0).alias("bookings_total"),
        fn.COALESCE(fn.SUM(pending_case), 0).alias("bookings_pending"),
        fn.COALESCE(fn.SUM(confirmed_case), 0).alias("bookings_confirmed"),
        fn.COALESCE(fn.SUM(canceled_case), 0).alias("bookings_canceled"),
        Client.select(fn.COUNT(Client.id)).alias("clients_total"),
        Vendor.select(fn.COUNT(Vendor.id)).alias("vendors_total"),
        Trip.select(fn.COUNT(Trip.id)).alias("trips_total"),
    )

    totals = query.dicts().get()

    return {
        "entities": {
            "clients": totals["clients_total"],
            "vendors": totals["vendors_total"],
            "trips": totals["trips_total"],
            "bookings": totals["bookings_total"],
        },
        "bookings": {
            "pending": totals["bookings_pending"],
            "confirmed": totals["bookings_confirmed"],
            "canceled": totals["bookings_canceled"],
        },
    }


def get_upcoming_trips(limit: int = 10, today: date | None = None) -> list[Trip]:
    """Ближайшие запланированные поездки."""
    today = today or date.today()
    return list(
        Trip.select()
        .where(
            (Trip.status == TripStatus.PLANNED.value)
            & (Trip.start_date >= today)
        )
        .order_by(Trip.start_date.asc())
        .limit(limit)
    )


def get_booking_start_counts(days: int = 14, today: date | None = None) -> dict:
    """Количество бронирований, начинающихся в ближайшие ``days`` дней."""
    today = today or date.today()
    # все дни диапазона, даже пустые
    counts = {today + timedelta(days=i): 0 for i in range(days)}
    end_date = today + timedelta(days=days - 1)

    query = (
        Booking.select(Booking.start_date, fn.COUNT(Booking.id).alias("cnt"))
        .where(
            (Booking.booking_status != BookingStatus.CANCELED.value)
            & (Booking.start_date.between(today, end_date))
        )
        .group_by(Booking.start_date)
        .order_by(Booking.start_date.asc())
    )

    for row in query:
        counts[row.start_date] = row.cnt

    return counts
