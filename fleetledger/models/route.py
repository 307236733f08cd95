"""
Route model with per-vehicle-type expense configuration.
"""
from sqlalchemy import Column, String, Integer, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped


class Route(TenantScoped, BaseModel):
    """Route between two places."""
    __tablename__ = "routes"

    route_name = Column(String(200), nullable=False)
    from_place = Column(String(200), nullable=False)
    to_place = Column(String(200), nullable=False)
    distance = Column(Integer, nullable=True)

    # Relationships
    vehicle_configs = relationship("RouteVehicleConfig", back_populates="route", cascade="all, delete-orphan")


class RouteVehicleConfig(BaseModel):
    """Auto-expense amounts applied when a vehicle of this type runs the route."""
    __tablename__ = "route_vehicle_configs"
    __table_args__ = (
        UniqueConstraint("route_id", "vehicle_type", "no_of_tyres", name="uq_route_vehicle_config"),
    )

    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    vehicle_type = Column(String(50), nullable=False)
    no_of_tyres = Column(Integer, nullable=True)
    toll_amt = Column(Numeric(15, 2), nullable=True)
    fixed_salary = Column(Numeric(15, 2), nullable=True)
    percentage_salary = Column(Numeric(5, 2), nullable=True)  # % of freight amount
    advance_amt = Column(Numeric(15, 2), nullable=True)

    route = relationship("Route", back_populates="vehicle_configs")
