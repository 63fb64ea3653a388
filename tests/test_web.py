from urllib.parse import unquote


def test_root_redirects_to_bookings(api_client):
    resp = api_client.get("/", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/bookings"


def test_bookings_page_lists_rows(api_client, agent_session, headers_for, make_booking, make_client):
    make_booking(clients=[make_client()], cost="1000")
    resp = api_client.get("/bookings", headers=headers_for(agent_session))
    assert resp.status_code == 200
    assert "Jane Doe" in resp.text
    assert "$100.00" in resp.text
    assert "commission-totals" not in resp.text


def test_admin_sees_commission_totals(api_client, admin_session, headers_for, make_booking):
    make_booking(cost="1000")
    resp = api_client.get("/bookings", headers=headers_for(admin_session))
    assert "commission-totals" in resp.text
    assert "Total commission: $100.00" in resp.text


def test_filter_count_shown(api_client, agent_session, headers_for):
    resp = api_client.get(
        "/bookings",
        params={"client_search": "x", "booking_statuses": ["Pending"]},
        headers=headers_for(agent_session),
    )
    assert "Filter (2)" in resp.text
    assert "No bookings found" in resp.text


def test_missing_booking_redirects_with_notice(api_client, agent_session, headers_for):
    headers = headers_for(agent_session)
    resp = api_client.get("/bookings/404", headers=headers, follow_redirects=False)
    assert resp.status_code == 303
    location = resp.headers["location"]
    assert unquote(location) == "/bookings?notice=Booking #404 was not found"

    page = api_client.get(location, headers=headers)
    assert "Booking #404 was not found" in page.text


def test_booking_detail_page(api_client, agent_session, headers_for, make_booking):
    booking = make_booking(notes="Sea view")
    resp = api_client.get(f"/bookings/{booking.id}", headers=headers_for(agent_session))
    assert resp.status_code == 200
    assert "Sea view" in resp.text
    assert "Sunny Hotels" in resp.text
