"""Подмодуль сервисов, связанных с поставщиками."""

from .dto import VendorCreateCommand, VendorDetailsDTO, VendorRowDTO, VendorUpdateCommand
from .vendor_service import (
    VendorNotFoundError,
    add_vendor,
    create_vendor_from_command,
    delete_vendor,
    get_vendor,
    get_vendor_commission_profile,
    get_vendor_detail_dto,
    list_vendor_rows,
    recalculate_vendor_rating,
    update_vendor,
    update_vendor_from_command,
)

__all__ = [
    "VendorNotFoundError",
    "VendorCreateCommand",
    "VendorDetailsDTO",
    "VendorRowDTO",
    "VendorUpdateCommand",
    "add_vendor",
    "create_vendor_from_command",
    "delete_vendor",
    "get_vendor",
    "get_vendor_commission_profile",
    "get_vendor_detail_dto",
    "list_vendor_rows",
    "recalculate_vendor_rating",
    "update_vendor",
    "update_vendor_from_command",
]
