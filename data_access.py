"""
Data access for the drive log.

Plain parameterized SQL over sqlite3. Reads return ``sqlite3.Row`` objects
(or dicts built from them); writes return an ``OpResult`` so callers can show
a generic failure message without handling database exceptions themselves.
"""
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, List, Optional

import config

log = logging.getLogger(__name__)

SAVE_FAILED = "Failed to save driving experience. Please try again."
DELETE_FAILED = "Failed to delete driving experience. Please try again."
LOOKUP_FAILED = "Failed to add entry. It may already exist."
LOOKUP_EMPTY = "Label cannot be empty."
NOT_FOUND = "Driving experience not found."

LOOKUP_TABLES = ("weather", "traffic", "supervisor", "road_type")


@dataclass
class DrivingExperience:
    drive_datetime: str
    km: float
    weather_id: int
    traffic_id: int
    supervisor_id: int
    road_type_ids: List[int] = field(default_factory=list)
    notes: str = ""
    id: Optional[int] = None


@dataclass(frozen=True)
class OpResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None


def get_db(db_path=None):
    con = sqlite3.connect(db_path or config.DB_PATH)
    con.row_factory = sqlite3.Row
    con.execute("PRAGMA foreign_keys = ON")
    return con


def _date_range(column, start_date=None, end_date=None):
    """WHERE fragments for an inclusive day range on ``column``."""
    conditions, params = [], []
    if start_date:
        conditions.append(f"{column} >= ?")
        params.append(f"{start_date} 00:00:00")
    if end_date:
        conditions.append(f"{column} <= ?")
        params.append(f"{end_date} 23:59:59")
    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    return where, params


# --- lookups -----------------------------------------------------------------

def _get_lookup(con, table):
    return con.execute(f"SELECT id, label FROM {table} ORDER BY label").fetchall()


def get_all_weather(con):
    return _get_lookup(con, "weather")


def get_all_traffic(con):
    return _get_lookup(con, "traffic")


def get_all_supervisors(con):
    return _get_lookup(con, "supervisor")


def get_all_road_types(con):
    return _get_lookup(con, "road_type")


def add_lookup(con, table: str, label: str) -> OpResult:
    # table names can't be bound as parameters, so only known ones get through
    if table not in LOOKUP_TABLES:
        return OpResult(False, error=f"Unknown lookup table: {table}")
    if not (label or "").strip():
        return OpResult(False, error=LOOKUP_EMPTY)
    try:
        with con:
            cur = con.execute(f"INSERT INTO {table}(label) VALUES (?)", (label.strip(),))
    except sqlite3.Error:
        log.exception("Error adding %s label %r", table, label)
        return OpResult(False, error=LOOKUP_FAILED)
    log.info("Added %s %r (id=%s)", table, label.strip(), cur.lastrowid)
    return OpResult(True, cur.lastrowid)


# --- driving experiences -----------------------------------------------------

def _save_road_types(con, exp: DrivingExperience):
    con.executemany(
        "INSERT INTO experience_road_type(experience_id, road_type_id) VALUES (?, ?)",
        [(exp.id, int(rt)) for rt in dict.fromkeys(exp.road_type_ids)],
    )


def _insert(con, exp: DrivingExperience):
    cur = con.execute(
        """
        INSERT INTO driving_experience(
            drive_datetime, km, notes, weather_id, traffic_id, supervisor_id
        )
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (exp.drive_datetime, exp.km, exp.notes or "", exp.weather_id, exp.traffic_id, exp.supervisor_id),
    )
    exp.id = cur.lastrowid
    _save_road_types(con, exp)


def _update(con, exp: DrivingExperience):
    cur = con.execute(
        """
        UPDATE driving_experience
        SET drive_datetime = ?, km = ?, notes = ?,
            weather_id = ?, traffic_id = ?, supervisor_id = ?
        WHERE id = ?
        """,
        (exp.drive_datetime, exp.km, exp.notes or "", exp.weather_id, exp.traffic_id,
         exp.supervisor_id, exp.id),
    )
    if cur.rowcount == 0:
        return False
    con.execute("DELETE FROM experience_road_type WHERE experience_id = ?", (exp.id,))
    _save_road_types(con, exp)
    return True


def save_experience(con, exp: DrivingExperience) -> OpResult:
    """Insert ``exp`` (no id) or replace it (id set), road types included.

    The fact row and its join rows are written in one transaction; any
    database error rolls the whole thing back.
    """
    is_new = exp.id is None
    if not exp.road_type_ids:
        return OpResult(False, error=SAVE_FAILED)
    try:
        with con:
            if is_new:
                _insert(con, exp)
            elif not _update(con, exp):
                return OpResult(False, error=NOT_FOUND)
    except (sqlite3.Error, OverflowError):
        # OverflowError: an id too large for a sqlite INTEGER
        log.exception("Error %s driving experience", "inserting" if is_new else "updating")
        if is_new:
            exp.id = None
        return OpResult(False, error=SAVE_FAILED)

    log.info("%s driving experience id=%s (%s road types)",
             "Inserted" if is_new else "Updated", exp.id, len(set(exp.road_type_ids)))
    return OpResult(True, exp.id)


def delete_experience(con, experience_id: int) -> OpResult:
    try:
        with con:
            cur = con.execute("DELETE FROM driving_experience WHERE id = ?", (experience_id,))
    except sqlite3.Error:
        log.exception("Error deleting driving experience id=%s", experience_id)
        return OpResult(False, error=DELETE_FAILED)
    if cur.rowcount == 0:
        return OpResult(False, error=NOT_FOUND)
    log.info("Deleted driving experience id=%s", experience_id)
    return OpResult(True, experience_id)


def find_experience(con, experience_id: int) -> Optional[DrivingExperience]:
    row = con.execute(
        """
        SELECT id, drive_datetime, km, notes, weather_id, traffic_id, supervisor_id
        FROM driving_experience WHERE id = ?
        """,
        (experience_id,),
    ).fetchone()
    if row is None:
        return None
    road_type_ids = [
        r["road_type_id"]
        for r in con.execute(
            "SELECT road_type_id FROM experience_road_type WHERE experience_id = ? ORDER BY road_type_id",
            (experience_id,),
        )
    ]
    return DrivingExperience(road_type_ids=road_type_ids, **dict(row))


def get_road_type_labels(con, experience_id):
    rows = con.execute(
        """
        SELECT rt.label
        FROM experience_road_type ert
        JOIN road_type rt ON ert.road_type_id = rt.id
        WHERE ert.experience_id = ?
        ORDER BY rt.label
        """,
        (experience_id,),
    )
    return [r["label"] for r in rows]


_EXPERIENCE_SELECT = """
    SELECT de.id, de.drive_datetime, de.km, de.notes,
           w.label AS weather, t.label AS traffic, s.label AS supervisor
    FROM driving_experience de
    JOIN weather w ON de.weather_id = w.id
    JOIN traffic t ON de.traffic_id = t.id
    JOIN supervisor s ON de.supervisor_id = s.id
"""


def get_experience_details(con, experience_id):
    row = con.execute(_EXPERIENCE_SELECT + " WHERE de.id = ?", (experience_id,)).fetchone()
    if row is None:
        return None
    details = dict(row)
    details["road_types"] = ", ".join(get_road_type_labels(con, experience_id))
    return details


def get_all_experiences(con, start_date=None, end_date=None):
    where, params = _date_range("de.drive_datetime", start_date, end_date)
    rows = [dict(r) for r in con.execute(
        _EXPERIENCE_SELECT + where + " ORDER BY de.drive_datetime DESC, de.id DESC", params
    )]
    for exp in rows:
        exp["road_types"] = ", ".join(get_road_type_labels(con, exp["id"]))
    return rows


# --- aggregates --------------------------------------------------------------

def get_total_km(con, start_date=None, end_date=None) -> float:
    where, params = _date_range("drive_datetime", start_date, end_date)
    row = con.execute(
        "SELECT COALESCE(SUM(km), 0) AS total FROM driving_experience" + where, params
    ).fetchone()
    return float(row["total"])


def count_experiences(con, start_date=None, end_date=None) -> int:
    where, params = _date_range("drive_datetime", start_date, end_date)
    row = con.execute("SELECT COUNT(*) AS c FROM driving_experience" + where, params).fetchone()
    return row["c"]


def get_km_by_weather(con):
    return con.execute("""
        SELECT w.label, COALESCE(SUM(de.km), 0) AS total_km
        FROM weather w
        LEFT JOIN driving_experience de ON w.id = de.weather_id
        GROUP BY w.id, w.label
        ORDER BY total_km DESC, w.label ASC
    """).fetchall()


def get_drives_by_road_type(con):
    return con.execute("""
        SELECT rt.label, COUNT(ert.experience_id) AS drive_count
        FROM road_type rt
        LEFT JOIN experience_road_type ert ON rt.id = ert.road_type_id
        GROUP BY rt.id, rt.label
        ORDER BY drive_count DESC, rt.label ASC
    """).fetchall()


def get_km_by_month(con):
    return con.execute("""
        SELECT strftime('%Y-%m', drive_datetime) AS month, SUM(km) AS total_km
        FROM driving_experience
        GROUP BY strftime('%Y-%m', drive_datetime)
        ORDER BY month ASC
    """).fetchall()


def get_summary_stats(con, goal_km=None):
    goal_km = config.DRIVING_GOAL_KM if goal_km is None else goal_km
    total_km = get_total_km(con)
    total_drives = count_experiences(con)
    by_weather = get_km_by_weather(con)
    by_road_type = get_drives_by_road_type(con)

    # rows are sorted by the aggregate, so the first one with data wins
    top_weather = by_weather[0]["label"] if by_weather and by_weather[0]["total_km"] > 0 else None
    top_road = by_road_type[0]["label"] if by_road_type and by_road_type[0]["drive_count"] > 0 else None

    return {
        "total_km": total_km,
        "total_drives": total_drives,
        "avg_km": total_km / total_drives if total_drives else 0.0,
        "most_common_weather": top_weather,
        "most_used_road_type": top_road,
        "goal_km": goal_km,
        "remaining_to_goal": max(0.0, goal_km - total_km),
    }
