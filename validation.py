from datetime import datetime

from data_access import DrivingExperience

# largest INTEGER sqlite can store
MAX_ID = 2**63 - 1

DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
)


def parse_drive_datetime(value):
    """Normalise a form datetime to the stored 'YYYY-MM-DD HH:MM:SS' form, or None."""
    value = (value or "").strip()
    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).strftime("%Y-%m-%d %H:%M:%S")
        except ValueError:
            continue
    return None


def _to_id(value):
    value = str(value).strip() if value is not None else ""
    if not (value.isascii() and value.isdigit()):
        return None
    id_ = int(value)
    return id_ if 0 < id_ <= MAX_ID else None


def _to_km(value):
    try:
        km = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    # rejects nan and inf as well as non-positive numbers
    return km if 0 < km < float("inf") else None


def validate_experience(form, experience_id=None):
    """
    Check raw form fields and build a DrivingExperience from them.

    ``form`` is any mapping; ``road_types`` may be a list (``getlist``) or a
    single value. Returns ``(errors, experience)``; ``experience`` is None
    whenever ``errors`` is non-empty.
    """
    errors = []

    drive_datetime = parse_drive_datetime(form.get("drive_datetime"))
    if drive_datetime is None:
        errors.append("Date and time is required.")

    km = _to_km(form.get("km"))
    if km is None:
        errors.append("Please enter a valid distance (km > 0).")

    weather_id = _to_id(form.get("weather_id"))
    if weather_id is None:
        errors.append("Please select a weather condition.")

    traffic_id = _to_id(form.get("traffic_id"))
    if traffic_id is None:
        errors.append("Please select a traffic condition.")

    supervisor_id = _to_id(form.get("supervisor_id"))
    if supervisor_id is None:
        errors.append("Please select a supervisor.")

    if hasattr(form, "getlist"):
        raw_road_types = form.getlist("road_types")
    else:
        raw_road_types = form.get("road_types") or []
        if not isinstance(raw_road_types, (list, tuple)):
            raw_road_types = [raw_road_types]
    road_type_ids = [_to_id(rt) for rt in raw_road_types]
    if not road_type_ids or None in road_type_ids:
        errors.append("Please select at least one road type.")

    if errors:
        return errors, None

    return errors, DrivingExperience(
        id=experience_id,
        drive_datetime=drive_datetime,
        km=km,
        notes=(form.get("notes") or "").strip(),
        weather_id=weather_id,
        traffic_id=traffic_id,
        supervisor_id=supervisor_id,
        road_type_ids=list(dict.fromkeys(road_type_ids)),
    )


def validate_lookup_label(label, kind="Label"):
    if not (label or "").strip():
        return [f"{kind} cannot be empty."]
    return []
