from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.assets.models import Asset, AssetDetails, AssetStatus, RepairRecord
from app.dependencies import auth as auth_deps
from app.dependencies import services as service_deps
from app.errors import ConflictError, NotFoundError
from app.main import create_app
from app.users.models import Role, User

ADMIN = User(id=1, username="ayse", full_name="Ayse Admin", role=Role.ADMIN)
LOCAL = User(id=2, username="deniz", full_name="Deniz Yilmaz", role=Role.USER, branch_id=10)
REMOTE = User(id=3, username="can", full_name="Can Demir", role=Role.USER, branch_id=20)

PRINTER = Asset(id=4, code="PRN-001", branch_id=10, status=AssetStatus.ACTIVE, repair_count=1, brand="HP")


@pytest.fixture
def asset_client():
    app = create_app()
    registry = AsyncMock()
    registry.find_by_id = AsyncMock(side_effect=lambda asset_id: PRINTER if asset_id == PRINTER.id else None)
    current = {"user": ADMIN}

    async def override_registry():
        return registry

    app.dependency_overrides[service_deps.get_asset_registry] = override_registry
    app.dependency_overrides[auth_deps.get_current_user] = lambda: current["user"]
    try:
        yield TestClient(app), registry, current
    finally:
        app.dependency_overrides.clear()


def test_user_lists_own_branch_by_default(asset_client):
    client, registry, current = asset_client
    current["user"] = LOCAL
    registry.find_by_branch = AsyncMock(return_value=[PRINTER])

    response = client.get("/assets")

    assert response.status_code == 200
    assert response.json()[0]["code"] == "PRN-001"
    registry.find_by_branch.assert_awaited_with(10)


def test_user_cannot_list_other_branch(asset_client):
    client, _, current = asset_client
    current["user"] = REMOTE

    assert client.get("/assets", params={"branch_id": 10}).status_code == 403


def test_admin_lists_all_assets(asset_client):
    client, registry, _ = asset_client
    registry.list_assets = AsyncMock(return_value=[PRINTER])

    response = client.get("/assets")

    assert response.status_code == 200
    registry.list_assets.assert_awaited()


def test_unknown_asset_is_404(asset_client):
    client, _, _ = asset_client

    assert client.get("/assets/99").status_code == 404


def test_repair_history_includes_total(asset_client):
    client, registry, current = asset_client
    current["user"] = LOCAL
    registry.repair_history = AsyncMock(
        return_value=[
            RepairRecord(
                id=1,
                asset_id=PRINTER.id,
                ticket_id=7,
                action_taken="Replaced fuser",
                repair_date=date(2024, 5, 2),
                cost=Decimal("150.00"),
            )
        ]
    )
    registry.total_repair_cost = AsyncMock(return_value=Decimal("150.00"))

    response = client.get(f"/assets/{PRINTER.id}/repairs")

    assert response.status_code == 200
    body = response.json()
    assert body["records"][0]["action_taken"] == "Replaced fuser"
    assert Decimal(str(body["total_cost"])) == Decimal("150.00")

    current["user"] = REMOTE
    assert client.get(f"/assets/{PRINTER.id}/repairs").status_code == 403


def test_admin_registers_asset(asset_client):
    client, registry, _ = asset_client
    registry.register = AsyncMock(return_value=PRINTER)

    response = client.post("/assets", json={"code": "PRN-001", "branch_id": 10, "brand": "HP"})

    assert response.status_code == 201
    assert response.json()["status"] == "active"
    details = registry.register.await_args.args[0]
    assert details == AssetDetails(code="PRN-001", branch_id=10, brand="HP")


def test_register_duplicate_code_is_409(asset_client):
    client, registry, _ = asset_client
    registry.register = AsyncMock(side_effect=ConflictError("Asset code PRN-001 is already registered"))

    response = client.post("/assets", json={"code": "PRN-001", "branch_id": 10})

    assert response.status_code == 409


def test_asset_writes_require_admin(asset_client):
    client, registry, current = asset_client
    current["user"] = LOCAL
    registry.register = AsyncMock()
    registry.update_details = AsyncMock()

    assert client.post("/assets", json={"code": "PC-1", "branch_id": 10}).status_code == 403
    assert client.put(f"/assets/{PRINTER.id}", json={"code": "PC-1", "branch_id": 10}).status_code == 403
    registry.register.assert_not_awaited()
    registry.update_details.assert_not_awaited()


def test_admin_updates_asset_details(asset_client):
    client, registry, _ = asset_client
    registry.update_details = AsyncMock(return_value=PRINTER)

    response = client.put(f"/assets/{PRINTER.id}", json={"code": "PRN-001", "branch_id": 10, "model": "M404"})

    assert response.status_code == 200
    asset_id, details = registry.update_details.await_args.args
    assert asset_id == PRINTER.id
    assert details.model == "M404"


def test_update_unknown_asset_is_404(asset_client):
    client, registry, _ = asset_client
    registry.update_details = AsyncMock(side_effect=NotFoundError("Asset 99 not found"))

    assert client.put("/assets/99", json={"code": "PC-1", "branch_id": 10}).status_code == 404
