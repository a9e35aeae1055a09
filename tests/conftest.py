"""Shared fixtures: a small product inventory."""

import copy
import json
from pathlib import Path

import pytest

from jsl.database import ListTable

INVENTORY = [
    {
        "id": 1,
        "name": "Laptop",
        "category": "Electronics",
        "price": 1200.50,
        "stock": 10,
        "tags": ["work", "portable"],
        "supplier": {"name": "TechCorp", "country": "USA"},
    },
    {
        "id": 2,
        "name": "Smartphone",
        "category": "Electronics",
        "price": 800,
        "stock": 25,
        "tags": ["mobile"],
        "supplier": {"name": "PhoneCo", "country": "China"},
    },
    {
        "id": 3,
        "name": "Coffee Maker",
        "category": "Appliances",
        "price": 50.99,
        "stock": 100,
        "tags": ["home", "kitchen"],
        "supplier": {"name": "HomeGoods", "country": "USA"},
    },
    {
        "id": 4,
        "name": "Desk Chair",
        "category": "Furniture",
        "price": 150,
        "stock": 15,
        "tags": [],
        "supplier": {"name": "Nordic", "country": "Sweden"},
    },
    {
        "id": 5,
        "name": "Monitor",
        "category": "Electronics",
        "price": 300,
        "stock": 40,
        "tags": ["work", "display"],
        "supplier": {"name": "TechCorp", "country": "USA"},
    },
    {
        "id": 6,
        "name": "Standing Desk",
        "category": "Furniture",
        "price": 450,
        "stock": 5,
    },
    {
        "id": 7,
        "name": "Mystery Box",
        "category": "Misc",
        "stock": 0,
        "active": True,
    },
    {
        "id": 8,
        "name": "Old Cable",
        "category": "Misc",
        "price": 0.0,
        "stock": 0,
    },
]


@pytest.fixture
def inventory() -> list[dict]:
    """A fresh copy of the inventory records."""
    return copy.deepcopy(INVENTORY)


@pytest.fixture
def inventory_table(inventory) -> ListTable:
    """The inventory as an in-memory table."""
    return ListTable(inventory)


@pytest.fixture
def inventory_file(tmp_path: Path, inventory) -> Path:
    """The inventory written as a JSON array file."""
    path = tmp_path / "inventory.json"
    path.write_text(json.dumps(inventory))
    return path
