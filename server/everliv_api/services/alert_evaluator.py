"""Threshold alert evaluation.

Alerts are evaluated live against the current biomarker value on every read;
the triggered state is never stored.
"""
from typing import Iterable, Optional

from ..models.alerts import BiomarkerAlert, BiomarkerAlertStatus
from ..models.biomarker import Biomarker, BiomarkerView, parse_numeric


def is_alert_triggered(biomarker: Biomarker, alert: Optional[BiomarkerAlert]) -> bool:
    """
    True iff the alert is enabled, the value is numeric, and a set threshold
    is breached. Non-numeric values never trigger.
    """
    if alert is None or not alert.enabled:
        return False
    value = parse_numeric(biomarker.value)
    if value is None:
        return False
    below = alert.threshold_below is not None and value < alert.threshold_below
    above = alert.threshold_above is not None and value > alert.threshold_above
    return below or above


def index_alerts(alerts: Iterable[BiomarkerAlert]) -> dict[str, BiomarkerAlert]:
    """Map alerts by biomarker name; a later entry for the same name wins."""
    return {alert.biomarker_name: alert for alert in alerts}


def evaluate_alerts(
    biomarkers: Iterable[Biomarker], alerts: Iterable[BiomarkerAlert]
) -> list[BiomarkerAlertStatus]:
    """Evaluate every alert that has a matching biomarker."""
    by_name = {b.name: b for b in biomarkers}
    results = []
    for alert in index_alerts(alerts).values():
        biomarker = by_name.get(alert.biomarker_name)
        if biomarker is None:
            continue
        results.append(
            BiomarkerAlertStatus(
                biomarker_name=biomarker.name,
                value=biomarker.value,
                unit=biomarker.unit,
                alert=alert,
                triggered=is_alert_triggered(biomarker, alert),
            )
        )
    return results


def with_alert_flags(
    biomarkers: Iterable[Biomarker], alerts: Iterable[BiomarkerAlert]
) -> list[BiomarkerView]:
    alert_map = index_alerts(alerts)
    return [
        BiomarkerView(
            **b.model_dump(),
            alert_triggered=is_alert_triggered(b, alert_map.get(b.name)),
        )
        for b in biomarkers
    ]
