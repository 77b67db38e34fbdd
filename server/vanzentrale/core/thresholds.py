"""Threshold evaluator: maps a sample to its active alerts.

Pure functions over frozen data; safe to call from any thread.
Thresholds are configuration: a global default plus optional per-vehicle
overrides.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace

from vanzentrale.core.models import AlertKind, AlertSet, Sample


@dataclass(frozen=True)
class Thresholds:
    gas_ppm_max: int = 350
    starter_battery_min_v: float = 11.8
    level_tolerance_deg: float = 1.5

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_THRESHOLDS = Thresholds()


class ThresholdTable:
    """Global thresholds with per-vehicle overrides."""

    def __init__(
        self,
        default: Thresholds = DEFAULT_THRESHOLDS,
        overrides: dict[str, dict] | None = None,
    ) -> None:
        self._default = default
        self._per_vehicle: dict[str, Thresholds] = {}
        for vehicle_id, values in (overrides or {}).items():
            known = {k: v for k, v in values.items() if hasattr(default, k)}
            self._per_vehicle[vehicle_id] = replace(default, **known)

    @property
    def default(self) -> Thresholds:
        return self._default

    def for_vehicle(self, vehicle_id: str) -> Thresholds:
        return self._per_vehicle.get(vehicle_id, self._default)

    def overrides(self) -> dict[str, Thresholds]:
        return dict(self._per_vehicle)


def evaluate(sample: Sample, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> AlertSet:
    """Evaluate every rule independently against one sample.

    A rule whose input is absent goes into ``indeterminate`` instead of being
    treated as clear.
    """
    active: set[AlertKind] = set()
    unknown: set[AlertKind] = set()

    if sample.gas_ppm is None:
        unknown.add(AlertKind.GAS_ALARM)
    elif sample.gas_ppm > thresholds.gas_ppm_max:
        active.add(AlertKind.GAS_ALARM)

    if sample.battery_start_v is None:
        unknown.add(AlertKind.STARTER_BATTERY_LOW)
    elif sample.battery_start_v < thresholds.starter_battery_min_v:
        active.add(AlertKind.STARTER_BATTERY_LOW)

    # Either axis past tolerance is enough; a missing axis only matters
    # when the present one is within tolerance.
    tilts = [abs(a) for a in (sample.pitch_deg, sample.roll_deg) if a is not None]
    if any(t > thresholds.level_tolerance_deg for t in tilts):
        active.add(AlertKind.UNLEVEL)
    elif len(tilts) < 2:
        unknown.add(AlertKind.UNLEVEL)

    return AlertSet(active=frozenset(active), indeterminate=frozenset(unknown))
