"""Подмодуль сервисов, связанных с бронированиями."""

from .booking_service import (
    BookingNotFoundError,
    add_booking,
    build_booking_form,
    create_booking_from_command,
    delete_booking,
    get_booking,
    get_booking_detail_dto,
    get_commission_summary,
    list_agent_commission_shares,
    list_booking_rows,
    list_commission_rows,
    set_booking_status,
    set_commission_status,
    update_booking,
    update_booking_from_command,
    update_booking_rating,
)
from .dto import BookingCreateCommand, BookingDetailsDTO, BookingRowDTO, BookingUpdateCommand

__all__ = [
    "BookingNotFoundError",
    "BookingCreateCommand",
    "BookingDetailsDTO",
    "BookingRowDTO",
    "BookingUpdateCommand",
    "add_booking",
    "build_booking_form",
    "create_booking_from_command",
    "delete_booking",
    "get_booking",
    "get_booking_detail_dto",
    "get_commission_summary",
    "list_agent_commission_shares",
    "list_booking_rows",
    "list_commission_rows",
    "set_booking_status",
    "set_commission_status",
    "update_booking",
    "update_booking_from_command",
    "update_booking_rating",
]
