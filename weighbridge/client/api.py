import logging
from datetime import date
from typing import Any

from weighbridge.client.cache import ResourceCache
from weighbridge.client.session import SessionService
from weighbridge.client.transport import send
from weighbridge.core.config import settings
from weighbridge.core.errors import AuthExpired, NotFoundError

logger = logging.getLogger(__name__)


class WeighbridgeClient:
    """
    Typed calls against the gate service for one terminal.

    Reads go through the keyed cache. Each mutation drops exactly the cache
    keys it can have changed, so other screens keep their data.
    """

    def __init__(self, session: SessionService, cache: ResourceCache | None = None) -> None:
        self.session = session
        self.cache = cache if cache is not None else ResourceCache(settings.cache_ttl_seconds)

    def _call(self, method: str, path: str, *, params: dict | None = None, json: Any = None) -> Any:
        try:
            return send(
                self.session.http,
                method,
                self.session.url(path),
                timeout=self.session.timeout,
                headers=self.session.auth_headers(),
                params=params,
                json=json,
            )
        except AuthExpired:
            logger.info("Session rejected on %s %s; signing out", method, path)
            self.session.clear()
            self.cache.clear()
            raise

    def _cached(self, key: tuple, path: str, params: dict | None = None) -> Any:
        return self.cache.get_or_fetch(key, lambda: self._call("GET", path, params=params))

    # --- registration -------------------------------------------------

    def find_vehicle(self, registration_number: str) -> dict | None:
        """Vehicle by registration number, or None when it is not registered."""
        reg = registration_number.strip().upper()
        try:
            return self._cached(("vehicles", "by-registration", reg), f"/api/vehicles/{reg}")
        except NotFoundError:
            return None

    def register_vehicle(self, **vehicle: Any) -> dict:
        out = self._call("POST", "/api/vehicles/register", json=vehicle)
        self.cache.invalidate("vehicles")
        return out

    def register_vehicle_and_driver(self, *, vehicle: dict, driver: dict) -> dict:
        try:
            return self._call("POST", "/api/security/registrations", json={"vehicle": vehicle, "driver": driver})
        finally:
            # A failed leg does not undo the other one, so both lists may have changed.
            self.cache.invalidate("vehicles")
            self.cache.invalidate("drivers")

    def pending_vehicles(self) -> list[dict]:
        return self._cached(("vehicles", "pending"), "/api/vehicles/verification")

    def approve_vehicle(self, vehicle_id: str) -> dict:
        out = self._call("POST", f"/api/vehicles/{vehicle_id}/approve")
        self.cache.invalidate("vehicles")
        return out

    def reject_vehicle(self, vehicle_id: str) -> dict:
        out = self._call("POST", f"/api/vehicles/{vehicle_id}/reject")
        self.cache.invalidate("vehicles")
        return out

    def create_driver(self, **driver: Any) -> dict:
        out = self._call("POST", "/api/drivers/", json=driver)
        self.cache.invalidate("drivers")
        return out

    def pending_drivers(self) -> list[dict]:
        return self._cached(("drivers", "pending"), "/api/drivers/pending")

    def approve_driver(self, driver_id: str) -> dict:
        out = self._call("POST", f"/api/drivers/{driver_id}/approve")
        self.cache.invalidate("drivers")
        return out

    def reject_driver(self, driver_id: str) -> dict:
        out = self._call("POST", f"/api/drivers/{driver_id}/reject")
        self.cache.invalidate("drivers")
        return out

    def update_driver(self, driver_id: str, **changes: Any) -> dict:
        out = self._call("PUT", f"/api/drivers/{driver_id}", json=changes)
        self.cache.invalidate("drivers")
        return out

    def delete_driver(self, driver_id: str) -> None:
        self._call("DELETE", f"/api/drivers/{driver_id}")
        self.cache.invalidate("drivers")

    # --- purchase orders ----------------------------------------------

    def materials(self, search: str | None = None) -> list[dict]:
        if search:
            return self._cached(("materials", "search", search), "/api/materials/", {"search": search})
        return self._cached(("materials",), "/api/materials/")

    def create_material(self, *, name: str, unit: str = "kg", grade: str | None = None) -> dict:
        out = self._call("POST", "/api/materials/", json={"name": name, "unit": unit, "grade": grade})
        self.cache.invalidate("materials")
        return out

    def update_material(self, material_id: str, **changes: Any) -> dict:
        out = self._call("PUT", f"/api/materials/{material_id}", json=changes)
        self.cache.invalidate("materials")
        return out

    def delete_material(self, material_id: str) -> None:
        self._call("DELETE", f"/api/materials/{material_id}")
        self.cache.invalidate("materials")

    def create_purchase_order(
        self,
        *,
        po_reference_number: str,
        seller_name: str,
        validity_start_date: date,
        validity_end_date: date,
        materials: list[dict],
        **extra: Any,
    ) -> dict:
        body = {
            "po_reference_number": po_reference_number,
            "seller_name": seller_name,
            "validity_start_date": validity_start_date.isoformat(),
            "validity_end_date": validity_end_date.isoformat(),
            "materials": materials,
            **extra,
        }
        out = self._call("POST", "/api/purchase-orders/", json=body)
        self.cache.invalidate("purchase-orders", "list")
        return out

    def purchase_order(self, po_id: str) -> dict:
        return self._cached(("purchase-orders", po_id), f"/api/purchase-orders/{po_id}")

    def active_purchase_orders(self) -> list[dict]:
        return self._cached(("purchase-orders", "list", "Active"), "/api/purchase-orders/active")

    def update_received(self, po_id: str, material_id: str, received_qty: float) -> dict:
        out = self._call(
            "PATCH",
            f"/api/purchase-orders/{po_id}/materials/{material_id}/receive",
            params={"received_qty": received_qty},
        )
        self.cache.invalidate("purchase-orders", po_id)
        self.cache.invalidate("purchase-orders", "list")
        return out

    # --- trips ----------------------------------------------------------

    def _trip_changed(self, trip_id: str) -> None:
        self.cache.invalidate("trips", trip_id)
        self.cache.invalidate("trips", "active")
        self.cache.invalidate("trips", "completed")
        self.cache.invalidate("dashboard")

    def create_trip(self, *, vehicle_id: str, driver_id: str, po_id: str) -> dict:
        out = self._call("POST", "/api/trips/", json={"vehicle_id": vehicle_id, "driver_id": driver_id, "po_id": po_id})
        self._trip_changed(out["id"])
        return out

    def trip(self, trip_id: str) -> dict:
        return self._cached(("trips", trip_id), f"/api/trips/{trip_id}")

    def active_trips(self) -> list[dict]:
        return self._cached(("trips", "active"), "/api/trips/active")

    def completed_trips(self) -> list[dict]:
        return self._cached(("trips", "completed"), "/api/trips/completed")

    def history(self, trip_id: str) -> list[dict]:
        return self._cached(("trips", trip_id, "stages"), f"/api/stage-transactions/trip/{trip_id}")

    def advance(self, trip_id: str, next_stage: str, remarks: str | None = None) -> dict:
        out = self._call(
            "POST",
            f"/api/stage-transactions/trip/{trip_id}/advance",
            json={"next_stage": next_stage, "remarks": remarks},
        )
        self._trip_changed(trip_id)
        return out

    def fail_trip(self, trip_id: str, remarks: str | None = None) -> dict:
        out = self._call("POST", f"/api/trips/{trip_id}/fail", json={"remarks": remarks})
        self._trip_changed(trip_id)
        return out

    # --- weights and unloading -----------------------------------------

    def capture_weight(
        self,
        trip_id: str,
        weight_type: str,
        weight_value: float,
        *,
        status: str = "PASSED",
        camera_image_refs: str | None = None,
    ) -> dict:
        body = {
            "trip_id": trip_id,
            "weight_type": weight_type,
            "weight_value": weight_value,
            "status": status,
            "camera_image_refs": camera_image_refs,
        }
        out = self._call("POST", "/api/weights/", json=body)
        self.cache.invalidate("trips", trip_id)
        # The active list carries gross/tare and net weight for each trip.
        self.cache.invalidate("trips", "active")
        self.cache.invalidate("dashboard")
        return out

    def weights(self, trip_id: str) -> list[dict]:
        return self._cached(("trips", trip_id, "weights"), f"/api/weights/trip/{trip_id}")

    def verify_unloading(
        self,
        trip_id: str,
        *,
        material_type: str,
        accepted_qty: float,
        rejection_qty: float = 0.0,
        remarks: str | None = None,
    ) -> dict:
        body = {
            "trip_id": trip_id,
            "material_type": material_type,
            "accepted_qty": accepted_qty,
            "rejection_qty": rejection_qty,
            "remarks": remarks,
        }
        out = self._call("POST", "/api/material-unloadings/", json=body)
        self.cache.invalidate("trips", trip_id, "unloadings")
        return out

    def unloadings(self, trip_id: str) -> list[dict]:
        return self._cached(("trips", trip_id, "unloadings"), f"/api/material-unloadings/trip/{trip_id}")

    def dashboard_stats(self) -> dict:
        return self._cached(("dashboard",), "/api/dashboard/stats")
