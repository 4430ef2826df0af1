from weighbridge.domains.trips.models import TripStage

STAGE_ORDER: tuple[TripStage, ...] = (
    TripStage.ENTRY_GATE,
    TripStage.GROSS_WEIGHT,
    TripStage.UNLOADING,
    TripStage.TARE_WEIGHT,
    TripStage.EXIT_GATE,
)

STAGE_LABELS: dict[TripStage, str] = {
    TripStage.ENTRY_GATE: "Entry Gate",
    TripStage.GROSS_WEIGHT: "Gross Weight",
    TripStage.UNLOADING: "Unloading",
    TripStage.TARE_WEIGHT: "Tare Weight",
    TripStage.EXIT_GATE: "Exit Gate",
}

INITIAL_STAGE = STAGE_ORDER[0]
TERMINAL_STAGE = STAGE_ORDER[-1]

# current -> the only stage it may advance to
NEXT_STAGE: dict[TripStage, TripStage] = {cur: nxt for cur, nxt in zip(STAGE_ORDER, STAGE_ORDER[1:])}


def next_stage(stage: TripStage) -> TripStage | None:
    return NEXT_STAGE.get(stage)


def is_allowed(current: TripStage, target: TripStage) -> bool:
    return NEXT_STAGE.get(current) == target


def stage_index(stage: TripStage) -> int:
    return STAGE_ORDER.index(stage)
