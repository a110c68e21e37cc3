"""Integration tests for product search, autocomplete and filter options."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from tests.factories import CategoryFactory, ProductFactory


@pytest_asyncio.fixture
async def catalog(db_session):
    now = datetime.now(timezone.utc)
    audio = CategoryFactory.create(name="Audio", slug="audio", sort_order=1)
    kitchen = CategoryFactory.create(name="Kitchen", slug="kitchen", sort_order=2)
    hidden = CategoryFactory.create(name="Hidden", slug="hidden", is_active=False)
    products = [
        ProductFactory.create(
            name="Studio Headphones",
            brand="Sonic",
            category=audio,
            price=Decimal("4000"),
            average_rating=4.5,
            num_reviews=12,
            created_at=now - timedelta(days=3),
        ),
        ProductFactory.create(
            name="Travel Speaker",
            brand="Sonic",
            category=audio,
            price=Decimal("1500"),
            description="Waterproof speaker with long battery",
            average_rating=3.8,
            num_reviews=40,
            created_at=now - timedelta(days=2),
        ),
        ProductFactory.create(
            name="Electric Kettle",
            brand="Brew",
            category=kitchen,
            price=Decimal("900"),
            average_rating=4.9,
            num_reviews=3,
            created_at=now - timedelta(days=1),
        ),
        ProductFactory.create(
            name="Studio Monitor",
            brand="Retro",
            category=audio,
            price=Decimal("9000"),
            is_active=False,
        ),
    ]
    db_session.add_all([*products, hidden])
    await db_session.commit()
    return products


def _names(response) -> list[str]:
    return [p["name"] for p in response.json()["products"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_without_query_lists_active_products(client, catalog):
    response = await client.get("/api/search")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total"] == 3
    assert data["currentPage"] == 1
    assert _names(response) == [
        "Electric Kettle",
        "Travel Speaker",
        "Studio Headphones",
    ]


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "params,expected",
    [
        ({"q": "studio"}, ["Studio Headphones"]),
        ({"q": "waterproof"}, ["Travel Speaker"]),
        ({"q": "brew"}, ["Electric Kettle"]),
        ({"category": "audio"}, ["Travel Speaker", "Studio Headphones"]),
        ({"brand": "sonic", "maxPrice": 2000}, ["Travel Speaker"]),
        ({"minPrice": 1000}, ["Travel Speaker", "Studio Headphones"]),
        ({"minRating": 4.5}, ["Electric Kettle", "Studio Headphones"]),
        (
            {"sort": "rating"},
            ["Electric Kettle", "Studio Headphones", "Travel Speaker"],
        ),
        (
            {"sort": "popularity"},
            ["Travel Speaker", "Studio Headphones", "Electric Kettle"],
        ),
        (
            {"sort": "price_low"},
            ["Electric Kettle", "Travel Speaker", "Studio Headphones"],
        ),
    ],
)
async def test_search_filters_and_sorting(client, catalog, params, expected):
    response = await client.get("/api/search", params=params)

    assert response.status_code == 200, response.text
    assert _names(response) == expected


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_pagination(client, catalog):
    response = await client.get("/api/search", params={"limit": 2, "page": 2})

    data = response.json()
    assert data["totalPages"] == 2
    assert data["count"] == 1
    assert _names(response) == ["Studio Headphones"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_autocomplete(client, catalog):
    response = await client.get("/api/search/autocomplete", params={"q": "stu"})

    assert response.status_code == 200, response.text
    assert response.json()["suggestions"] == ["Studio Headphones"]


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("params", [{}, {"q": "s"}, {"q": " s "}])
async def test_autocomplete_needs_two_characters(client, catalog, params):
    response = await client.get("/api/search/autocomplete", params=params)

    assert response.json() == {"success": True, "suggestions": []}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_filter_options(client, catalog):
    response = await client.get("/api/search/filters")

    assert response.status_code == 200, response.text
    filters = response.json()["filters"]
    assert filters["brands"] == ["Brew", "Sonic"]
    assert filters["priceRange"] == {"minPrice": 900.0, "maxPrice": 4000.0}
    assert [c["slug"] for c in filters["categories"]] == ["audio", "kitchen"]
    assert filters["ratings"] == [5, 4, 3, 2, 1]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_filter_options_within_category(client, catalog):
    response = await client.get("/api/search/filters", params={"category": "kitchen"})

    filters = response.json()["filters"]
    assert filters["brands"] == ["Brew"]
    assert filters["priceRange"] == {"minPrice": 900.0, "maxPrice": 900.0}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_filter_options_without_products(client):
    response = await client.get("/api/search/filters")

    filters = response.json()["filters"]
    assert filters["brands"] == []
    assert filters["priceRange"] == {"minPrice": 0.0, "maxPrice": 0.0}
    assert filters["categories"] == []
