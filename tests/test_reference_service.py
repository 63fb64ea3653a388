from types import SimpleNamespace

import pytest
from peewee import IntegrityError

from database.models import ServiceType, Tag, VendorTag
from services.access import AccessDeniedError
from services.filters import LocationTagFilters, NameFilters
from services.reference_service import (
    NO_STATE_LABEL,
    ReferenceNotFoundError,
    build_location_hierarchy,
    create_location_tag,
    create_service_type,
    create_tag,
    delete_service_type,
    find_ids_by_names,
    get_location_hierarchy,
    list_location_tags,
    list_service_types,
    list_tags,
    rename_tag,
)
from services.validators import FieldValidationError


def _loc(continent, country, state=None, city=None):
    return SimpleNamespace(continent=continent, country=country, state_province=state, city=city)


def test_hierarchy_groups_levels():
    nodes = build_location_hierarchy(
        [
            _loc("Europe", "France", None, "Paris"),
            _loc("Europe", "France", "Provence", "Nice"),
            _loc("Europe", "Italy", "Lazio"),
            _loc("Asia", "Japan", "Kanto", "Tokyo"),
        ]
    )
    assert [n.continent for n in nodes] == ["Europe", "Asia"]
    europe = nodes[0]
    assert europe.countries["France"] == {NO_STATE_LABEL: ["Paris"], "Provence": ["Nice"]}
    assert europe.countries["Italy"] == {"Lazio": []}


def test_location_tags_crud(admin_session):
    tag = create_location_tag(admin_session, " Europe ", "France", "", "Paris")
    assert tag.state_province is None
    assert tag.label == "Europe > France > Paris"
    create_location_tag(admin_session, "Asia", "Japan")
    labels = [t.label for t in list_location_tags()]
    assert labels == ["Asia > Japan", "Europe > France > Paris"]
    assert [t.label for t in list_location_tags(LocationTagFilters(search_term="par"))] == [
        "Europe > France > Paris"
    ]
    hierarchy = get_location_hierarchy()
    assert hierarchy[1].countries == {"France": {NO_STATE_LABEL: ["Paris"]}}
    with pytest.raises(FieldValidationError):
        create_location_tag(admin_session, "", "France")


def test_reference_mutations_require_admin(agent_session):
    with pytest.raises(AccessDeniedError):
        create_tag(agent_session, "Luxury")
    with pytest.raises(AccessDeniedError):
        create_service_type(agent_session, "Hotel")


def test_tags_sorted_by_usage(admin_session, make_vendor):
    luxury = create_tag(admin_session, "Luxury")
    create_tag(admin_session, "Budget")
    vendor = make_vendor()
    VendorTag.create(vendor=vendor, tag=luxury)
    rows = list_tags()
    assert [(t.name, t.usage_count) for t in rows] == [("Luxury", 1), ("Budget", 0)]
    assert [t.name for t in list_tags(NameFilters(search_term="bud"))] == ["Budget"]


def test_duplicate_tag_name_conflicts(admin_session):
    create_tag(admin_session, "Luxury")
    with pytest.raises(IntegrityError):
        create_tag(admin_session, "Luxury")
    assert Tag.select().count() == 1


def test_rename_missing_tag(admin_session):
    with pytest.raises(ReferenceNotFoundError):
        rename_tag(admin_session, 77, "X")


def test_service_types_with_tags_and_vendor_counts(admin_session, make_vendor):
    family = create_tag(admin_session, "Family")
    hotel = create_service_type(admin_session, "Hotel", tag_ids=[family.id])
    create_service_type(admin_session, "Flight")
    make_vendor(service_types=[hotel])
    rows = {r.name: r for r in list_service_types()}
    assert rows["Hotel"].tag_names == ["Family"]
    assert rows["Hotel"].vendor_count == 1
    assert rows["Flight"].vendor_count == 0


def test_service_type_in_use_cannot_be_deleted(admin_session, make_booking):
    booking = make_booking()
    with pytest.raises(IntegrityError):
        delete_service_type(admin_session, booking.service_type_id)
    assert ServiceType.select().count() == 1


def test_find_ids_by_names():
    hotel = ServiceType.create(name="Hotel")
    ids, unknown = find_ids_by_names(ServiceType, [" HOTEL", "Yacht", ""])
    assert ids == [hotel.id]
    assert unknown == ["Yacht"]
