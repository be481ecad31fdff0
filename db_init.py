import logging
import sqlite3

import config

log = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS weather (
  id INTEGER PRIMARY KEY,
  label TEXT NOT NULL UNIQUE CHECK (trim(label) <> '')
);

CREATE TABLE IF NOT EXISTS traffic (
  id INTEGER PRIMARY KEY,
  label TEXT NOT NULL UNIQUE CHECK (trim(label) <> '')
);

CREATE TABLE IF NOT EXISTS supervisor (
  id INTEGER PRIMARY KEY,
  label TEXT NOT NULL CHECK (trim(label) <> '')  -- supervisor name, duplicates allowed
);

CREATE TABLE IF NOT EXISTS road_type (
  id INTEGER PRIMARY KEY,
  label TEXT NOT NULL UNIQUE CHECK (trim(label) <> '')
);

CREATE TABLE IF NOT EXISTS driving_experience (
  id INTEGER PRIMARY KEY,
  drive_datetime DATETIME NOT NULL,                -- 'YYYY-MM-DD HH:MM:SS'
  km REAL NOT NULL CHECK (km > 0),
  notes TEXT NOT NULL DEFAULT '',
  weather_id INTEGER NOT NULL REFERENCES weather(id),
  traffic_id INTEGER NOT NULL REFERENCES traffic(id),
  supervisor_id INTEGER NOT NULL REFERENCES supervisor(id),
  created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS experience_road_type (
  experience_id INTEGER NOT NULL REFERENCES driving_experience(id) ON DELETE CASCADE,
  road_type_id INTEGER NOT NULL REFERENCES road_type(id),
  PRIMARY KEY (experience_id, road_type_id)
);

CREATE INDEX IF NOT EXISTS idx_de_datetime ON driving_experience(drive_datetime);
CREATE INDEX IF NOT EXISTS idx_de_weather ON driving_experience(weather_id);
CREATE INDEX IF NOT EXISTS idx_ert_road_type ON experience_road_type(road_type_id);
"""

DEFAULT_LOOKUPS = {
    "weather": ("Sunny", "Cloudy", "Rainy", "Snowy", "Foggy"),
    "traffic": ("Light", "Moderate", "Heavy"),
    "road_type": ("Urban", "Rural", "Highway", "Residential"),
}


def ensure_schema(db_path=None):
    con = sqlite3.connect(db_path or config.DB_PATH)
    try:
        con.executescript(SCHEMA)
        con.commit()
    finally:
        con.close()


def seed_defaults(db_path=None):
    """Insert the default weather/traffic/road type labels; existing labels are left alone."""
    con = sqlite3.connect(db_path or config.DB_PATH)
    try:
        with con:
            for table, labels in DEFAULT_LOOKUPS.items():
                con.executemany(
                    f"INSERT OR IGNORE INTO {table}(label) VALUES (?)",
                    [(label,) for label in labels],
                )
        log.info("Seeded default lookups in %s", db_path or config.DB_PATH)
    finally:
        con.close()


if __name__ == "__main__":
    ensure_schema()
    seed_defaults()
    print(f"DB ready: {config.DB_PATH}")
