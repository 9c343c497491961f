"""
PetPOS — Root conftest for pytest

Shared fixtures available to all test modules.

@file conftest.py
"""

import pytest

from tests.factories import (
    BatchFactory,
    BranchFactory,
    CustomerFactory,
    ProductFactory,
    SuperuserFactory,
    UserFactory,
)


@pytest.fixture
def user(db):
    """Active cashier with default password TestPass2026!"""
    return UserFactory()


@pytest.fixture
def admin_user(db):
    """Superuser with default password TestPass2026!"""
    return SuperuserFactory()


@pytest.fixture
def branch(db):
    return BranchFactory()


@pytest.fixture
def other_branch(db):
    return BranchFactory()


@pytest.fixture
def product(db):
    """Product priced 100.00, no tax."""
    return ProductFactory()


@pytest.fixture
def customer(db):
    return CustomerFactory()


@pytest.fixture
def stocked_batch(product, branch):
    """Lot B1 of `product` at `branch` holding 10 units."""
    return BatchFactory(product=product, branch=branch, batch_number='B1', quantity=10)
