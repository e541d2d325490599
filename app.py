from config import COLUMN_PRESETS, DATA_PATH, DEFAULT_BATCH_SIZE, DEFAULT_EPOCHS, DEFAULT_WINDOW_LENGTH, UNSET_DEPTH, columns_for_depths
from dataset_iterator import IrrigationDatasetIterator
from errors import ConfigurationError, InsufficientDataError, RecordParseError, SourceUnavailableError
from recommender import generate_recommendation, train_model
from flask import Flask, jsonify, request, g
import logging, json, uuid, os
from datetime import datetime
from time import perf_counter
from dotenv import load_dotenv


def parse_form(payload: dict):
    """
    Read crop, soil and the three sensor depths from a request body.
    Missing or non-numeric depths become -1 (unset). Returns (form, errors).
    """
    errors = []
    crop = str(payload.get("crop") or "").strip()
    soil = str(payload.get("soil") or "").strip()
    if not crop:
        errors.append("Crop Type Field - No crop type was entered.")
    if not soil:
        errors.append("Soil Type Field - No soil type was entered.")

    depths = []
    for i in (1, 2, 3):
        raw = payload.get(f"depth{i}")
        try:
            depths.append(float(raw))
        except (TypeError, ValueError):
            depths.append(UNSET_DEPTH)
    if all(d == UNSET_DEPTH for d in depths):
        errors.append("A minimum of 1 sensor depth must be entered.")

    form = {"crop": crop, "soil": soil, "depths": depths, "columns": columns_for_depths(*depths)}
    return form, errors


def create_app():
    """
    Creates and configures the Flask application, the HTTP stand-in for the
    desktop input form.
    """

    # Load environment variables from a .env file at the start.
    load_dotenv()

    app = Flask(__name__)

    app.config.update(
        DATA_PATH=os.getenv("IRS_DATA_PATH", DATA_PATH),
        REPORT_DIR=os.getenv("IRS_REPORT_DIR"),
        WINDOW_LENGTH=int(os.getenv("IRS_WINDOW_LENGTH", str(DEFAULT_WINDOW_LENGTH))),
        EPOCHS=int(os.getenv("IRS_EPOCHS", str(DEFAULT_EPOCHS))),
        # trained models keyed by column count, like the single model held by the form
        _model_cache={},
        _metrics={
            "requests_total": 0, "latency_ms_sum": 0.0, "latency_ms_count": 0,
            "trainings_total": 0, "reports_total": 0, "errors_total": 0, "last_error_ts": None,
        }
    )

    # Configure logging
    gunicorn_logger = logging.getLogger("gunicorn.error")
    app.logger.handlers = gunicorn_logger.handlers
    app.logger.setLevel(gunicorn_logger.level)


    def record_error(e):
        m = app.config['_metrics']
        m["errors_total"] += 1
        m["last_error_ts"] = datetime.utcnow().isoformat()
        app.logger.error(json.dumps({"rid": getattr(g, "request_id", "-"), "error": str(e)}))


    def error_response(e):
        # map pipeline errors to status codes
        record_error(e)
        if isinstance(e, SourceUnavailableError):
            return jsonify({"ok": False, "error": str(e)}), 404
        if isinstance(e, RecordParseError):
            return jsonify({"ok": False, "error": str(e), "line": e.line_number, "column": e.column}), 422
        if isinstance(e, InsufficientDataError):
            return jsonify({"ok": False, "error": str(e)}), 409
        return jsonify({"ok": False, "error": str(e)}), 400


    def iterator_from(payload, **overrides):
        params = {
            "columns": payload.get("columns", COLUMN_PRESETS[1]),
            "batch_size": payload.get("batch_size", DEFAULT_BATCH_SIZE),
            "window_length": payload.get("window_length", app.config['WINDOW_LENGTH']),
        }
        params.update(overrides)
        path = payload.get("path") or app.config['DATA_PATH']
        return IrrigationDatasetIterator(path, indexed=True, **params)


    @app.get("/ping")
    def ping():
        return jsonify({"ok": True}), 200


    @app.get("/healthz")
    def healthz():
        path = app.config['DATA_PATH']
        return jsonify({
            "ok": True,
            "data_path": path,
            "data_available": os.path.exists(path),
            "trained_columns": sorted(app.config['_model_cache'].keys()),
        }), 200


    @app.get("/metrics")
    def metrics():
        m = app.config['_metrics']
        if m["latency_ms_count"] > 0:
            avg_latency = m["latency_ms_sum"] / m["latency_ms_count"]
        else:
            avg_latency = 0.0
        return jsonify({
            "requests_total": m["requests_total"],
            "avg_latency_ms": round(avg_latency, 2),
            "trainings_total": m["trainings_total"],
            "reports_total": m["reports_total"],
            "errors_total": m["errors_total"],
            "last_error_ts": m["last_error_ts"],
        }), 200


    @app.get("/presets")
    def presets():
        return jsonify({"sensors_to_columns": {str(k): v for k, v in COLUMN_PRESETS.items()}}), 200


    @app.post("/dataset/inspect")
    def dataset_inspect():
        payload = request.get_json(silent=True) or {}
        try:
            with iterator_from(payload) as it:
                out = it.describe()
                out["has_next"] = it.has_next()
        except (SourceUnavailableError, ConfigurationError) as e:
            return error_response(e)
        return jsonify(out), 200


    @app.post("/dataset/preview")
    def dataset_preview():
        payload = request.get_json(silent=True) or {}
        try:
            index = int(payload.get("index", 0))
        except (TypeError, ValueError):
            return jsonify({"ok": False, "error": "index must be an integer"}), 400

        try:
            with iterator_from(payload) as it:
                it.scan_to(max(0, index) * it.batch() * max(it.num_examples(), 1))
                batch = it.next()
                if batch is None:
                    return jsonify({"ok": False, "error": "no data", "total_examples": it.total_examples()}), 404
                out = {
                    "ok": True,
                    "cursor": it.cursor(),
                    "features": batch.features.tolist(),
                    "labels": batch.labels.tolist(),
                    "input_shape": list(batch.features.shape),
                    "label_shape": list(batch.labels.shape),
                }
        except (SourceUnavailableError, ConfigurationError, RecordParseError, InsufficientDataError) as e:
            return error_response(e)
        return jsonify(out), 200


    @app.post("/train")
    def train():
        payload = request.get_json(silent=True) or {}
        form, errors = parse_form(payload)
        if errors:
            return jsonify({"ok": False, "errors": errors}), 400

        path = payload.get("path") or app.config['DATA_PATH']
        try:
            epochs = int(payload.get("epochs", app.config['EPOCHS']))
            window = int(payload.get("window_length", app.config['WINDOW_LENGTH']))
        except (TypeError, ValueError):
            return jsonify({"ok": False, "errors": ["epochs and window_length must be integers"]}), 400

        try:
            model, stats = train_model(path, form["columns"], window_length=window, epochs=epochs)
        except (SourceUnavailableError, ConfigurationError, RecordParseError, InsufficientDataError) as e:
            return error_response(e)

        app.config['_model_cache'][form["columns"]] = {"model": model, "window_length": stats["window_length"],
                                                        "trained_on": path}
        app.config['_metrics']["trainings_total"] += 1
        return jsonify({"ok": True, "columns": form["columns"], "stats": stats}), 200


    @app.post("/recommend")
    def recommend():
        payload = request.get_json(silent=True) or {}
        form, errors = parse_form(payload)
        if errors:
            return jsonify({"ok": False, "errors": errors}), 400

        cached = app.config['_model_cache'].get(form["columns"])
        if cached is None:
            return jsonify({"ok": False, "errors": [
                f"no model trained for {form['columns']} columns; train one first"]}), 400

        path = payload.get("path") or app.config['DATA_PATH']
        d1, d2, d3 = form["depths"]
        try:
            report_path, results = generate_recommendation(
                cached["model"], path, form["crop"], form["soil"], d1, d2, d3,
                window_length=cached["window_length"], report_dir=app.config['REPORT_DIR'],
            )
        except (SourceUnavailableError, ConfigurationError, RecordParseError, InsufficientDataError) as e:
            return error_response(e)

        if report_path is None:
            return jsonify({"ok": False, "errors": ["report could not be written"]}), 500
        app.config['_metrics']["reports_total"] += 1
        return jsonify({"ok": True, "report_path": report_path, "amount": results or None,
                        "irrigate": bool(results)}), 200


    @app.before_request
    def before_request_hook():
        g._t0 = perf_counter()
        g.request_id = str(uuid.uuid4())

    @app.after_request
    def after_request_hook(resp):
        m = app.config['_metrics']
        ms = (perf_counter() - getattr(g, "_t0", perf_counter())) * 1000.0
        m["requests_total"] += 1
        m["latency_ms_sum"] += ms
        m["latency_ms_count"] += 1
        resp.headers["Cache-Control"] = "no-store"
        resp.headers["X-Response-Time"] = f"{ms:.2f}ms"
        app.logger.info(json.dumps({
            "rid": g.request_id, "method": request.method, "path": request.path,
            "status": resp.status_code, "ms": round(ms, 2),
        }))
        return resp

    return app


app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True) # starts a server on http://127.0.0.1:5000
