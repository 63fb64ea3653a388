"""Подмодуль сервисов, связанных с клиентами."""

from .client_service import (
    ClientNotFoundError,
    add_client,
    create_client_from_command,
    delete_client,
    get_client_detail_dto,
    get_clients_by_ids,
    list_client_rows,
    update_client,
    update_client_from_command,
)
from .dto import ClientCreateCommand, ClientDTO, ClientDetailsDTO, ClientUpdateCommand

__all__ = [
    "ClientNotFoundError",
    "ClientCreateCommand",
    "ClientDTO",
    "ClientDetailsDTO",
    "ClientUpdateCommand",
    "add_client",
    "create_client_from_command",
    "delete_client",
    "get_client_detail_dto",
    "get_clients_by_ids",
    "list_client_rows",
    "update_client",
    "update_client_from_command",
]
