"""
Shared fixtures: a throwaway SQLite database seeded with master data.
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import fleetledger.models  # noqa: F401
from fleetledger.core.security import create_access_token
from fleetledger.db.base import Base
from fleetledger.db.session import get_db
from fleetledger.main import app
from fleetledger.models.customer import Customer
from fleetledger.models.driver import Driver
from fleetledger.models.route import Route, RouteVehicleConfig
from fleetledger.models.tenant import Tenant
from fleetledger.models.transporter import Transporter
from fleetledger.models.vehicle import Vehicle
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.subtrip import SubtripCreate, SubtripMaterialInfo, SubtripReceive
from fleetledger.services import subtrip_service


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so several threads can share one database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'fleetledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    """One tenant in Karnataka with customers, transporters, drivers, vehicles and routes."""
    tenant = Tenant(name="Shree Logistics", state="Karnataka")
    other_tenant = Tenant(name="Other Carrier", state="Kerala")
    db.add_all([tenant, other_tenant])
    db.flush()

    ns = SimpleNamespace(tenant=tenant, other_tenant=other_tenant)
    ns.customer_intra = Customer(
        tenant_id=tenant.id, customer_name="Ultra Cement", gst_enabled=True,
        state=" karnataka ", invoice_prefix="UC/", invoice_suffix="/26", invoice_pay_within=15,
    )
    ns.customer_inter = Customer(
        tenant_id=tenant.id, customer_name="Chennai Steel", gst_enabled=True, state="Tamil Nadu",
    )
    ns.customer_no_gst = Customer(tenant_id=tenant.id, customer_name="Local Traders", gst_enabled=False)
    ns.customer_no_state = Customer(tenant_id=tenant.id, customer_name="Unknown Co", gst_enabled=True)
    ns.transporter = Transporter(
        tenant_id=tenant.id, transport_name="Ravi Transport", gst_enabled=False,
        state="Karnataka", tds_percentage=Decimal("1"),
    )
    ns.transporter_gst = Transporter(
        tenant_id=tenant.id, transport_name="Kerala Carriers", gst_enabled=True,
        state="Kerala", tds_percentage=Decimal("2"),
    )
    ns.driver = Driver(tenant_id=tenant.id, driver_name="Manju")
    ns.driver_two = Driver(tenant_id=tenant.id, driver_name="Suresh")
    ns.market_driver = Driver(tenant_id=tenant.id, driver_name="Market Driver")
    db.add_all([
        ns.customer_intra, ns.customer_inter, ns.customer_no_gst, ns.customer_no_state,
        ns.transporter, ns.transporter_gst, ns.driver, ns.driver_two, ns.market_driver,
    ])
    db.flush()

    ns.own_vehicle = Vehicle(
        tenant_id=tenant.id, vehicle_no="KA01AB1234", vehicle_type="tanker", no_of_tyres=10, is_own=True,
    )
    ns.own_vehicle_two = Vehicle(
        tenant_id=tenant.id, vehicle_no="KA01AB5678", vehicle_type="tanker", no_of_tyres=10, is_own=True,
    )
    ns.market_vehicle = Vehicle(
        tenant_id=tenant.id, vehicle_no="KA05MV9999", vehicle_type="body", no_of_tyres=6,
        is_own=False, transporter_id=ns.transporter.id,
    )
    ns.market_vehicle_gst = Vehicle(
        tenant_id=tenant.id, vehicle_no="KL07MV1111", vehicle_type="body", no_of_tyres=6,
        is_own=False, transporter_id=ns.transporter_gst.id,
    )
    ns.route = Route(tenant_id=tenant.id, route_name="Bangalore - Mysore", from_place="Bangalore", to_place="Mysore")
    ns.percentage_route = Route(tenant_id=tenant.id, route_name="Bangalore - Hubli", from_place="Bangalore", to_place="Hubli")
    ns.unconfigured_route = Route(tenant_id=tenant.id, route_name="Bangalore - Goa", from_place="Bangalore", to_place="Goa")
    db.add_all([
        ns.own_vehicle, ns.own_vehicle_two, ns.market_vehicle, ns.market_vehicle_gst,
        ns.route, ns.percentage_route, ns.unconfigured_route,
    ])
    db.flush()

    db.add_all([
        RouteVehicleConfig(
            route_id=ns.route.id, vehicle_type="tanker", no_of_tyres=10,
            toll_amt=Decimal("500"), fixed_salary=Decimal("1000"), advance_amt=Decimal("2000"),
        ),
        RouteVehicleConfig(
            route_id=ns.percentage_route.id, vehicle_type="tanker", no_of_tyres=None,
            percentage_salary=Decimal("10"), toll_amt=Decimal("0"),
        ),
    ])
    db.commit()

    ns.user = CurrentUser(user_id="1", name="Asha", tenant_id=tenant.id)
    return ns


@pytest.fixture
def make_subtrip(db, seed):
    """
    Build a subtrip through the lifecycle service.

    kind "own" uses the own vehicle on the configured route, "market" the
    market vehicle; `receive=False` stops at loaded.
    """
    def _make(kind="own", rate="500", loading_weight="20", commission_rate=None,
              shortage_amount=None, customer=None, driver=None, vehicle=None,
              route=None, receive=True):
        if kind == "own":
            vehicle = vehicle or seed.own_vehicle
            driver = driver or seed.driver
            route = route or seed.route
        else:
            vehicle = vehicle or seed.market_vehicle
            driver = driver or seed.market_driver
            route = route or seed.route
        customer = customer or seed.customer_intra

        subtrip = subtrip_service.create_subtrip(db, seed.tenant.id, SubtripCreate(
            vehicle_id=vehicle.id,
            driver_id=driver.id,
            route_id=route.id,
            customer_id=customer.id,
            loading_point="Bangalore",
            unloading_point="Mysore",
            start_date=date(2026, 3, 1),
            material=SubtripMaterialInfo(
                material_type="Cement",
                loading_weight=Decimal(loading_weight),
                rate=Decimal(rate),
                commission_rate=Decimal(commission_rate) if commission_rate is not None else None,
                consignee="Mysore Depot",
            ),
        ), seed.user)

        if receive:
            subtrip = subtrip_service.receive_subtrip(db, seed.tenant.id, subtrip.id, SubtripReceive(
                unloading_weight=Decimal(loading_weight),
                end_date=date(2026, 3, 2),
                shortage_amount=Decimal(shortage_amount) if shortage_amount is not None else None,
            ), seed.user)
        return subtrip

    return _make


@pytest.fixture
def client(session_factory, seed):
    """TestClient bound to the test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed):
    token = create_access_token(1, seed.tenant.id, name="Asha")
    return {"Authorization": f"Bearer {token}"}
