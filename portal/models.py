from __future__ import annotations

from datetime import datetime

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


class Destination(db.Model):
    __tablename__ = "destinations"

    id = db.Column(db.Integer, primary_key=True)
    country_name = db.Column(db.String(100), nullable=False)
    city_name = db.Column(db.String(100), nullable=False)
    airport_code = db.Column(db.String(8), nullable=False, unique=True)
    rate_tier1 = db.Column(db.Float)
    rate_tier2 = db.Column(db.Float)
    rate_tier3 = db.Column(db.Float)
    rate_tier4 = db.Column(db.Float)
    express_surcharge_pct = db.Column(db.Float, nullable=False, default=0.0)
    transit_days_min = db.Column(db.Integer, nullable=False, default=3)
    transit_days_max = db.Column(db.Integer, nullable=False, default=5)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Destination {self.airport_code}>"


class Vehicle(db.Model):
    __tablename__ = "vehicles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    capacity_lbs = db.Column(db.Float, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    bookings = db.relationship("Booking", back_populates="vehicle")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Vehicle {self.name}>"


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)
    window_start = db.Column(db.DateTime, nullable=False, index=True)
    window_end = db.Column(db.DateTime, nullable=False, index=True)
    estimated_weight_lbs = db.Column(db.Float, nullable=False, default=0.0)
    pickup_or_drop = db.Column(db.String(10), nullable=False, default="dropoff")
    zip_code = db.Column(db.String(10))
    status = db.Column(db.String(20), nullable=False, default="pending")
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    vehicle = db.relationship("Vehicle", back_populates="bookings")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Booking {self.id} {self.status}>"


class BusinessHours(db.Model):
    """Weekly opening schedule; ``day_of_week`` follows ``date.weekday()``."""

    __tablename__ = "business_hours"

    id = db.Column(db.Integer, primary_key=True)
    day_of_week = db.Column(db.Integer, nullable=False, unique=True)
    open_time = db.Column(db.Time)
    close_time = db.Column(db.Time)
    is_closed = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<BusinessHours {self.day_of_week}>"


class AvailabilityOverride(db.Model):
    """Date-specific hours such as holidays or shortened days."""

    __tablename__ = "availability_overrides"

    id = db.Column(db.Integer, primary_key=True)
    override_date = db.Column(db.Date, nullable=False, unique=True)
    open_time = db.Column(db.Time)
    close_time = db.Column(db.Time)
    is_closed = db.Column(db.Boolean, nullable=False, default=False)
    is_holiday = db.Column(db.Boolean, nullable=False, default=False)
    holiday_name = db.Column(db.String(100))

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<AvailabilityOverride {self.override_date}>"


class PostalGeo(db.Model):
    __tablename__ = "postal_geos"

    id = db.Column(db.Integer, primary_key=True)
    zip_code = db.Column(db.String(5), nullable=False, unique=True)
    city = db.Column(db.String(100), nullable=False)
    state = db.Column(db.String(2), nullable=False)
    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<PostalGeo {self.zip_code}>"


class Quote(db.Model):
    __tablename__ = "quotes"

    id = db.Column(db.Integer, primary_key=True)
    reference = db.Column(db.String(40), nullable=False, unique=True, index=True)
    customer_id = db.Column(db.String(64))
    customer_name = db.Column(db.String(200), nullable=False)
    customer_email = db.Column(db.String(200), nullable=False)
    customer_phone = db.Column(db.String(40))
    destination_id = db.Column(
        db.Integer, db.ForeignKey("destinations.id"), nullable=False
    )
    service_type = db.Column(db.String(20), nullable=False, default="standard")
    weight_lbs = db.Column(db.Float, nullable=False)
    length_in = db.Column(db.Float)
    width_in = db.Column(db.Float)
    height_in = db.Column(db.Float)
    declared_value = db.Column(db.Float, nullable=False, default=0.0)
    rate_per_lb = db.Column(db.Float, nullable=False)
    base_shipping_cost = db.Column(db.Float, nullable=False)
    express_surcharge = db.Column(db.Float, nullable=False, default=0.0)
    consolidation_fee = db.Column(db.Float, nullable=False, default=0.0)
    handling_fee = db.Column(db.Float, nullable=False, default=0.0)
    insurance_cost = db.Column(db.Float, nullable=False, default=0.0)
    total_cost = db.Column(db.Float, nullable=False)
    estimated_transit_days = db.Column(db.Integer)
    status = db.Column(db.String(20), nullable=False, default="pending")
    calculation_flagged = db.Column(db.Boolean, nullable=False, default=False)
    special_instructions = db.Column(db.Text)
    quote_metadata = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    follow_up_due_at = db.Column(db.DateTime)
    follow_up_status = db.Column(db.String(20), nullable=False, default="scheduled")

    destination = db.relationship("Destination")

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Quote {self.reference}>"
