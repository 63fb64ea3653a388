from datetime import date

import pytest

from database.models import AuditLog, Client, Trip, TripClient
from services.clients import (
    ClientCreateCommand,
    ClientNotFoundError,
    ClientUpdateCommand,
    add_client,
    create_client_from_command,
    delete_client,
    get_client_detail_dto,
    list_client_rows,
    update_client_from_command,
)
from services.filters import ClientFilters
from services.validators import FieldValidationError


def test_add_client_normalizes_names(agent_session):
    client = add_client(agent_session, first_name="  mary-ann ", last_name="smith", notes=" ")
    assert client.full_name == "Mary-Ann Smith"
    assert client.notes is None
    entry = AuditLog.get(AuditLog.resource_type == "client")
    assert entry.action == "create"
    assert entry.resource_id == str(client.id)


def test_add_client_requires_names():
    with pytest.raises(FieldValidationError) as exc:
        create_client_from_command(ClientCreateCommand(first_name="Jane", last_name=""))
    assert exc.value.field == "last_name"
    assert Client.select().count() == 0


def test_list_is_sorted_and_filtered(make_client):
    make_client("zoe", "Adams")
    make_client("Al", "Brown")
    make_client("Bob", "adams")
    rows = list_client_rows()
    assert [r.full_name for r in rows] == ["Bob adams", "zoe Adams", "Al Brown"]
    assert [r.full_name for r in list_client_rows(ClientFilters(search_term="BROWN"))] == [
        "Al Brown"
    ]


def test_update_keeps_untouched_fields(make_client):
    client = make_client(notes="vip")
    detail = update_client_from_command(ClientUpdateCommand(id=client.id, first_name="joan"))
    assert detail.first_name == "Joan"
    assert detail.last_name == "Doe"
    assert detail.notes == "vip"


def test_update_missing_client():
    with pytest.raises(ClientNotFoundError):
        update_client_from_command(ClientUpdateCommand(id=404, first_name="X"))


def test_detail_lists_trips_and_bookings(make_client, make_booking):
    client = make_client()
    trip = Trip.create(name="Paris", start_date=date(2024, 6, 1), end_date=date(2024, 6, 10))
    TripClient.create(trip=trip, client=client)
    booking = make_booking(clients=[client])

    detail = get_client_detail_dto(client.id)
    assert [t.name for t in detail.trips] == ["Paris"]
    assert [b.id for b in detail.bookings] == [booking.id]
    assert detail.bookings[0].vendor_name == "Sunny Hotels"


def test_delete_client(make_client):
    client = make_client()
    delete_client(client.id)
    assert Client.get_or_none(Client.id == client.id) is None
    with pytest.raises(ClientNotFoundError):
        delete_client(client.id)
