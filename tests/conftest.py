import pytest

import data_access as dal
from data_access import DrivingExperience
from db_init import ensure_schema, seed_defaults


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "drivelog.db")
    ensure_schema(path)
    seed_defaults(path)
    return path


@pytest.fixture
def con(db_path):
    con = dal.get_db(db_path)
    yield con
    con.close()


@pytest.fixture
def lookups(con):
    """Ids of the seeded lookup rows keyed by label, plus one supervisor."""
    sup = dal.add_lookup(con, "supervisor", "Alex")
    ids = {"supervisor": {"Alex": sup.value}}
    ids["weather"] = {r["label"]: r["id"] for r in dal.get_all_weather(con)}
    ids["traffic"] = {r["label"]: r["id"] for r in dal.get_all_traffic(con)}
    ids["road_type"] = {r["label"]: r["id"] for r in dal.get_all_road_types(con)}
    return ids


@pytest.fixture
def make_experience(lookups):
    def _make(when="2025-03-10 08:30:00", km=12.5, weather="Sunny", traffic="Light",
              road_types=("Urban",), notes="", id=None):
        return DrivingExperience(
            id=id,
            drive_datetime=when,
            km=km,
            notes=notes,
            weather_id=lookups["weather"][weather],
            traffic_id=lookups["traffic"][traffic],
            supervisor_id=lookups["supervisor"]["Alex"],
            road_type_ids=[lookups["road_type"][rt] for rt in road_types],
        )
    return _make
