"""Integration tests for saved shipping addresses."""

import uuid

import pytest
from tests.factories import AddressFactory

ADDRESS = {
    "fullName": "Asha Rao",
    "phone": "9876543210",
    "pincode": "560001",
    "addressLine1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_first_address_becomes_default(client):
    response = await client.post("/api/addresses", json=ADDRESS)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["message"] == "Address added successfully"
    assert data["address"]["isDefault"] is True
    assert data["address"]["country"] == "India"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_new_default_replaces_old(client):
    first = (await client.post("/api/addresses", json=ADDRESS)).json()["address"]
    second = (
        await client.post(
            "/api/addresses", json={**ADDRESS, "city": "Mysuru", "isDefault": True}
        )
    ).json()["address"]

    response = await client.get("/api/addresses")

    data = response.json()
    assert data["count"] == 2
    defaults = {a["id"]: a["isDefault"] for a in data["addresses"]}
    assert defaults == {first["id"]: False, second["id"]: True}
    assert data["addresses"][0]["id"] == second["id"]


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "field,value",
    [("phone", "12345"), ("pincode", "56000A"), ("fullName", "")],
)
async def test_invalid_address_rejected(client, field, value):
    response = await client.post("/api/addresses", json={**ADDRESS, field: value})

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_and_update_address(client, db_session, buyer):
    address = AddressFactory.create(buyer.user_id)
    db_session.add(address)
    await db_session.commit()

    fetched = await client.get(f"/api/addresses/{address.id}")
    assert fetched.status_code == 200
    assert fetched.json()["address"]["city"] == "Bengaluru"

    response = await client.put(
        f"/api/addresses/{address.id}", json={"city": "Hubballi"}
    )

    assert response.status_code == 200, response.text
    assert response.json()["message"] == "Address updated successfully"
    assert response.json()["address"]["city"] == "Hubballi"
    assert response.json()["address"]["fullName"] == "Asha Rao"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_users_address_is_not_found(client, db_session):
    address = AddressFactory.create("someone-else")
    db_session.add(address)
    await db_session.commit()

    for response in (
        await client.get(f"/api/addresses/{address.id}"),
        await client.delete(f"/api/addresses/{address.id}"),
        await client.get(f"/api/addresses/{uuid.uuid4()}"),
    ):
        assert response.status_code == 404
        assert response.json()["message"] == "Address not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_deleting_default_promotes_another(client, db_session, buyer):
    default = AddressFactory.create(buyer.user_id, is_default=True)
    other = AddressFactory.create(buyer.user_id, is_default=False, city="Mysuru")
    db_session.add_all([default, other])
    await db_session.commit()

    response = await client.delete(f"/api/addresses/{default.id}")

    assert response.status_code == 200
    assert response.json()["message"] == "Address deleted successfully"
    remaining = (await client.get("/api/addresses")).json()["addresses"]
    assert [(a["id"], a["isDefault"]) for a in remaining] == [(str(other.id), True)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_set_default_address(client, db_session, buyer):
    default = AddressFactory.create(buyer.user_id, is_default=True)
    other = AddressFactory.create(buyer.user_id, is_default=False)
    db_session.add_all([default, other])
    await db_session.commit()

    response = await client.put(f"/api/addresses/{other.id}/default")

    assert response.status_code == 200, response.text
    assert response.json()["message"] == "Default address updated"
    assert response.json()["address"]["isDefault"] is True
    await db_session.refresh(default)
    assert default.is_default is False
