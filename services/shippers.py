from core.imports import text
from core.db_utils import transaction


class ShipperService:
    def __init__(self, engine):
        self.engine = engine

    def get_details(self, shipper_id):
        with self.engine.connect() as conn:
            row = conn.execute(
                text("SELECT Id, LicensePlate, Company FROM Shipper WHERE Id = :id"), {"id": shipper_id}
            ).first()
        return dict(row._mapping) if row is not None else None

    def update_details(self, shipper_id, details):
        """Update company and licence plate; a field left out keeps its stored value."""
        current = self.get_details(shipper_id)
        if current is None:
            return None
        company = details.get("company", current["Company"])
        license_plate = details.get("license", details.get("licensePlate", current["LicensePlate"]))
        with transaction(self.engine, f"update shipper {shipper_id}") as conn:
            conn.execute(text("""
                UPDATE Shipper
                SET Company = :company,
                    LicensePlate = :license_plate
                WHERE Id = :id
            """), {"id": shipper_id, "company": company, "license_plate": license_plate})
        return self.get_details(shipper_id)
