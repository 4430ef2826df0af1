from pydantic import BaseModel


class DashboardStatsOut(BaseModel):
    active_trips: int
    completed_trips: int
    pending_vehicles: int
    pending_drivers: int
    active_purchase_orders: int
    weight_today_kg: float
