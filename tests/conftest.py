"""Shared fixtures: an in-memory HubSpot served through ``httpx.MockTransport``."""

import asyncio
import json
from collections import Counter
from typing import Any

import httpx
import pytest

from sow_portal.integrations.hubspot.gateway import HubSpotGateway
from sow_portal.integrations.hubspot.provisioning import SchemaProvisioner
from sow_portal.integrations.hubspot.schema import REQUIRED_FIELDS
from sow_portal.integrations.hubspot.self_healing import SelfHealingRunner

MANAGED_FIELDS = frozenset(definition.name for definition in REQUIRED_FIELDS)
TEST_BASE_URL = "https://api.hubapi.test"


def _json(status: int, body: Any) -> httpx.Response:
    return httpx.Response(status, json=body)


def _missing_property(name: str) -> httpx.Response:
    return _json(
        400,
        {
            "status": "error",
            "message": f"Property {name} does not exist",
            "category": "VALIDATION_ERROR",
            "errors": [{"code": "PROPERTY_DOESNT_EXIST", "context": {"propertyName": [name]}}],
        },
    )


class FakeHubSpot:
    """Minimal HubSpot portal: properties, groups, deals, files and notes.

    Record endpoints reject any SOW property that has not been created,
    the way a real portal does after someone deletes it in settings.
    """

    def __init__(self) -> None:
        self.groups: set[str] = set()
        self.properties: dict[str, dict[str, Any]] = {}
        self.deals: dict[str, dict[str, Any]] = {}
        self.files: dict[str, dict[str, Any]] = {}
        self.notes: list[dict[str, Any]] = []
        self.property_creates: Counter[str] = Counter()
        self.group_creates = 0
        self.requests: list[httpx.Request] = []
        # name -> (status, body) returned instead of creating the property
        self.property_failures: dict[str, tuple[int, Any]] = {}
        self.create_delay = 0.0
        self._ids = 0

    # ---------- Test helpers ----------

    def provision_all(self) -> None:
        self.groups.add("sow_approval")
        for definition in REQUIRED_FIELDS:
            self.properties[definition.name] = definition.to_payload()

    def delete_property(self, name: str) -> None:
        self.properties.pop(name, None)

    def add_deal(self, deal_id: str, **properties: Any) -> None:
        self.deals[deal_id] = dict(properties)

    def _next_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}-{self._ids}"

    def _missing(self, names: list[str]) -> str | None:
        for name in names:
            if name in MANAGED_FIELDS and name not in self.properties:
                return name
        return None

    # ---------- Transport ----------

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        if request.headers.get("Authorization") != "Bearer test-token":
            return _json(401, {"status": "error", "message": "Invalid access token"})

        if method == "POST" and path == "/crm/v3/properties/deals/groups":
            return self._create_group(json.loads(request.content))
        if method == "POST" and path == "/crm/v3/properties/deals":
            return await self._create_property(json.loads(request.content))
        if method == "POST" and path == "/crm/v3/objects/deals/search":
            return self._search(json.loads(request.content))
        if path.startswith("/crm/v3/objects/deals/"):
            deal_id = path.rsplit("/", 1)[-1]
            if method == "GET":
                return self._get_deal(deal_id, request.url.params.get("properties", ""))
            if method == "PATCH":
                return self._update_deal(deal_id, json.loads(request.content))
        if method == "POST" and path == "/crm/v3/objects/notes":
            body = json.loads(request.content)
            note_id = self._next_id("note")
            self.notes.append({"id": note_id, **body})
            return _json(201, {"id": note_id, "properties": body["properties"]})
        if method == "POST" and path == "/files/v3/files":
            file_id = self._next_id("file")
            self.files[file_id] = {"raw": request.content, "access": None}
            return _json(201, {"id": file_id, "url": f"https://files.test/{file_id}.pdf"})
        if path.startswith("/files/v3/files/"):
            file_id = path.rsplit("/", 1)[-1]
            if file_id not in self.files:
                return _json(404, {"status": "error", "message": "File not found"})
            if method == "PATCH":
                self.files[file_id]["access"] = json.loads(request.content)["access"]
                return _json(200, {"id": file_id})
            if method == "GET":
                return _json(200, {"id": file_id, "url": f"https://files.test/{file_id}.pdf"})

        return _json(404, {"status": "error", "message": f"No route for {method} {path}"})

    def _create_group(self, body: dict[str, Any]) -> httpx.Response:
        self.group_creates += 1
        if body["name"] in self.groups:
            return _json(409, {"status": "error", "message": "Group already exists"})
        self.groups.add(body["name"])
        return _json(201, body)

    async def _create_property(self, body: dict[str, Any]) -> httpx.Response:
        name = body["name"]
        self.property_creates[name] += 1
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if name in self.property_failures:
            status, error_body = self.property_failures[name]
            return _json(status, error_body)
        if name in self.properties:
            return _json(
                409,
                {"status": "error", "message": f"Property {name} already exists",
                 "category": "OBJECT_ALREADY_EXISTS"},
            )
        self.properties[name] = body
        return _json(201, body)

    def _search(self, body: dict[str, Any]) -> httpx.Response:
        missing = self._missing(body.get("properties", []))
        if missing:
            return _missing_property(missing)
        results = []
        for deal_id, props in self.deals.items():
            filters = [f for group in body.get("filterGroups", []) for f in group["filters"]]
            if all(props.get(f["propertyName"]) == f.get("value") for f in filters):
                results.append({"id": deal_id, "properties": dict(props)})
        results = results[: body.get("limit", 10)]
        return _json(200, {"total": len(results), "results": results})

    def _get_deal(self, deal_id: str, properties: str) -> httpx.Response:
        missing = self._missing([p for p in properties.split(",") if p])
        if missing:
            return _missing_property(missing)
        if deal_id not in self.deals:
            return _json(404, {"status": "error", "message": "Deal does not exist"})
        return _json(200, {"id": deal_id, "properties": dict(self.deals[deal_id])})

    def _update_deal(self, deal_id: str, body: dict[str, Any]) -> httpx.Response:
        missing = self._missing(list(body["properties"]))
        if missing:
            return _missing_property(missing)
        if deal_id not in self.deals:
            return _json(404, {"status": "error", "message": "Deal does not exist"})
        self.deals[deal_id].update(body["properties"])
        return _json(200, {"id": deal_id, "properties": dict(self.deals[deal_id])})


@pytest.fixture
def fake_hubspot() -> FakeHubSpot:
    return FakeHubSpot()


@pytest.fixture
def gateway(fake_hubspot: FakeHubSpot) -> HubSpotGateway:
    """Gateway wired to the fake portal."""
    return HubSpotGateway(
        access_token="test-token",
        base_url=TEST_BASE_URL,
        transport=fake_hubspot.transport,
    )


@pytest.fixture
def provisioner(gateway: HubSpotGateway) -> SchemaProvisioner:
    return SchemaProvisioner(gateway)


@pytest.fixture
def runner(provisioner: SchemaProvisioner) -> SelfHealingRunner:
    return SelfHealingRunner(provisioner, setup_timeout=5.0, operation_timeout=5.0)
