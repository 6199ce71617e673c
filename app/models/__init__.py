# Rental Intake: Database Models
# Import all models here for SQLAlchemy discovery

from app.models.vehicle_record import VehicleRecordRow   # noqa
