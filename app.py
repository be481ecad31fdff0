import logging
from datetime import datetime

from flask import Flask, jsonify, request, session, g, abort

import config
import data_access as dal
from db_init import ensure_schema
from id_codec import TokenRegistry, encode_id
from validation import validate_experience, validate_lookup_label

log = logging.getLogger(__name__)

GENERIC_ERROR = "An unexpected error occurred."

LOOKUP_KINDS = {
    "weather": ("weather", "Weather label"),
    "traffic": ("traffic", "Traffic label"),
    "road_type": ("road_type", "Road type label"),
    "supervisor": ("supervisor", "Supervisor name"),
}


def configure_logging(level=None):
    logging.basicConfig(
        level=level or config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s]: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_con():
    if "con" not in g:
        g.con = dal.get_db(g.db_path)
    return g.con


def tokens():
    return TokenRegistry(session, secret=g.id_secret)


def _date_arg(name):
    value = request.args.get(name, "").strip()
    if not value:
        return None
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        abort(400, description=f"{name} must be YYYY-MM-DD")
    return value


def _rows(rows):
    return [dict(r) for r in rows]


def _experience_id_or_404(token):
    experience_id = tokens().retrieve_encoded_id(token)
    if not experience_id:
        abort(404, description="Invalid driving experience ID.")
    return experience_id


def _failure(result):
    status = 404 if result.error == dal.NOT_FOUND else 500
    return jsonify({"error": result.error}), status


def create_app(db_path=None, id_secret=None):
    app = Flask(__name__)
    app.secret_key = config.SECRET_KEY
    app.config["DB_PATH"] = db_path or config.DB_PATH
    app.config["ID_SECRET"] = id_secret or config.ID_SECRET

    ensure_schema(app.config["DB_PATH"])
    log.info("Drive log using database %s", app.config["DB_PATH"])

    @app.before_request
    def _bind_settings():
        g.db_path = app.config["DB_PATH"]
        g.id_secret = app.config["ID_SECRET"]

    @app.teardown_appcontext
    def _close_con(exc):
        con = g.pop("con", None)
        if con is not None:
            con.close()

    @app.errorhandler(400)
    @app.errorhandler(404)
    def _json_error(err):
        return jsonify({"error": err.description}), err.code

    @app.errorhandler(500)
    def _json_server_error(err):
        return jsonify({"error": GENERIC_ERROR}), 500

    @app.get("/")
    def index():
        con = get_con()
        return jsonify({
            "total_drives": dal.count_experiences(con),
            "total_km": dal.get_total_km(con),
        })

    @app.get("/lookups")
    def lookups():
        con = get_con()
        return jsonify({
            "weather": _rows(dal.get_all_weather(con)),
            "traffic": _rows(dal.get_all_traffic(con)),
            "supervisor": _rows(dal.get_all_supervisors(con)),
            "road_type": _rows(dal.get_all_road_types(con)),
        })

    @app.post("/lookups/<kind>")
    def add_lookup(kind):
        if kind not in LOOKUP_KINDS:
            abort(404, description=f"Unknown lookup: {kind}")
        table, what = LOOKUP_KINDS[kind]
        label = request.form.get("label", "").strip()
        errors = validate_lookup_label(label, what)
        if errors:
            return jsonify({"errors": errors}), 400
        result = dal.add_lookup(get_con(), table, label)
        if not result.ok:
            return jsonify({"error": result.error}), 409
        return jsonify({"id": result.value, "label": label}), 201

    @app.get("/drives")
    def list_drives():
        start_date = _date_arg("start_date")
        end_date = _date_arg("end_date")
        con = get_con()
        rows = dal.get_all_experiences(con, start_date, end_date)
        for row in rows:
            row["token"] = encode_id(row.pop("id"), g.id_secret)
        return jsonify({
            "start_date": start_date,
            "end_date": end_date,
            "total_km": dal.get_total_km(con, start_date, end_date),
            "drives": rows,
        })

    @app.post("/drives")
    def create_drive():
        errors, exp = validate_experience(request.form)
        if errors:
            return jsonify({"errors": errors}), 400
        result = dal.save_experience(get_con(), exp)
        if not result.ok:
            return _failure(result)
        token = tokens().store_encoded_id(f"drive_{result.value}", result.value)
        return jsonify({"token": token, "message": "Driving experience added successfully!"}), 201

    @app.get("/drives/<token>")
    def show_drive(token):
        experience_id = _experience_id_or_404(token)
        con = get_con()
        exp = dal.find_experience(con, experience_id)
        if exp is None:
            abort(404, description=dal.NOT_FOUND)
        details = dal.get_experience_details(con, experience_id)
        return jsonify({
            "token": token,
            "drive_datetime": exp.drive_datetime,
            "km": exp.km,
            "notes": exp.notes,
            "weather_id": exp.weather_id,
            "traffic_id": exp.traffic_id,
            "supervisor_id": exp.supervisor_id,
            "road_type_ids": exp.road_type_ids,
            "weather": details["weather"],
            "traffic": details["traffic"],
            "supervisor": details["supervisor"],
            "road_types": details["road_types"],
        })

    @app.post("/drives/<token>")
    def update_drive(token):
        experience_id = _experience_id_or_404(token)
        errors, exp = validate_experience(request.form, experience_id=experience_id)
        if errors:
            return jsonify({"errors": errors}), 400
        result = dal.save_experience(get_con(), exp)
        if not result.ok:
            return _failure(result)
        return jsonify({"token": token, "message": "Driving experience updated successfully!"})

    @app.post("/drives/<token>/delete")
    def delete_drive(token):
        experience_id = _experience_id_or_404(token)
        result = dal.delete_experience(get_con(), experience_id)
        if not result.ok:
            return _failure(result)
        return jsonify({"message": "Driving experience deleted successfully!"})

    @app.get("/stats")
    def stats():
        con = get_con()
        return jsonify({
            "summary": dal.get_summary_stats(con),
            "km_by_weather": _rows(dal.get_km_by_weather(con)),
            "drives_by_road_type": _rows(dal.get_drives_by_road_type(con)),
            "km_by_month": _rows(dal.get_km_by_month(con)),
        })

    return app


if __name__ == "__main__":
    configure_logging()
    create_app().run(host="0.0.0.0", port=config.PORT, debug=False)
