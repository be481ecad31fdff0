import os
import secrets

from dotenv import load_dotenv

load_dotenv()

DB_PATH = os.getenv("DB_PATH", "drivelog.db")
ID_SECRET = os.getenv("ID_SECRET", "DriveLog2025!SecureKey#")
SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
DRIVING_GOAL_KM = float(os.getenv("DRIVING_GOAL_KM", "500"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "5000"))
