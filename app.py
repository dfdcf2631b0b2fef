from flask import Flask, request, jsonify, send_file
from errors import AnalysisError, InvalidInput
from llm import ollama_status
from pipeline import AnalysisPipeline, AnalysisRequest
import io, logging, os, uuid

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = Flask(__name__)

pipeline = AnalysisPipeline()

# ── In-memory result cache ───────────────────────────────────────────────────
_cache: dict = {}
_MAX_CACHE = 50

def _cache_put(report: dict) -> str:
    key = str(uuid.uuid4())
    if len(_cache) >= _MAX_CACHE:
        del _cache[next(iter(_cache))]
    _cache[key] = report
    return key

def _cache_get(key: str):
    return _cache.get(key) if key else None

# ── Request parsing ──────────────────────────────────────────────────────────

def _as_bool(value, default=False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() not in ("false", "0", "off", "no", "")

def _analysis_request(store_default=False) -> AnalysisRequest:
    """Build an AnalysisRequest from JSON, multipart or raw-text bodies."""
    ct = request.content_type or ""
    user_id = request.headers.get("X-User-Id")

    if "application/json" in ct:
        body = request.get_json(silent=True) or {}
        if not isinstance(body, dict):
            raise InvalidInput("Request body must be a JSON object.", stage="content_extraction")
        message = body.get("message") or body.get("url") or body.get("text") or ""
        return AnalysisRequest(
            message=str(message),
            document_type=body.get("document_type"),
            user_id=user_id or body.get("user_id"),
            store=_as_bool(body.get("store"), store_default),
        )

    if "multipart/form-data" in ct or "application/x-www-form-urlencoded" in ct:
        upload = request.files.get("file")
        form = request.form
        req = AnalysisRequest(
            message=form.get("message") or form.get("url") or form.get("text") or "",
            document_type=form.get("document_type"),
            user_id=user_id or form.get("user_id"),
            store=_as_bool(form.get("store"), store_default),
        )
        if upload and upload.filename:
            req.filename = upload.filename
            req.file_bytes = upload.read()
        return req

    return AnalysisRequest(message=request.get_data(as_text=True), user_id=user_id, store=store_default)

def _error(e: AnalysisError):
    app.logger.warning("Analysis failed at %s: %s (%s)", e.stage, e.kind, e.__cause__ or e)
    return jsonify(e.to_dict()), e.status_code

def _run(req: AnalysisRequest):
    try:
        response = pipeline.run(req)
    except AnalysisError as e:
        return _error(e)

    report = response.to_dict()
    report["cache_key"] = _cache_put(report)
    return jsonify(report), 200

# ── REST API ─────────────────────────────────────────────────────────────────

@app.route("/api/health", methods=["GET"])
def api_health():
    return jsonify({"status": "ok", "llm": ollama_status()})


@app.route("/api/llm/status", methods=["GET"])
def api_llm_status():
    return jsonify(ollama_status())


@app.route("/api/analyze", methods=["POST"])
def api_analyze():
    """
    Analyze a legal document and return the scored result as JSON.

    Accepts:
      • application/json    → { "message": "<url or text>", "document_type": "privacy", "store": false }
      • multipart/form-data → file field, or message / url / text field
      • text/plain          → the URL or document text as the body
    """
    try:
        req = _analysis_request()
    except AnalysisError as e:
        return _error(e)
    return _run(req)


@app.route("/api/upload", methods=["POST"])
def api_upload():
    """Analyze an uploaded PDF / DOCX / TXT and store its chunks for the calling user."""
    try:
        req = _analysis_request(store_default=True)
        if req.file_bytes is None:
            raise InvalidInput("No file provided.", stage="content_extraction")
    except AnalysisError as e:
        return _error(e)
    return _run(req)


# ── Export routes ────────────────────────────────────────────────────────────

def _cached_or_404():
    report = _cache_get(request.args.get("key"))
    if report is None:
        return None, (jsonify({"error": "No analysis found — please analyze a document first."}), 404)
    return report, None

@app.route("/export/pdf")
def export_pdf():
    report, missing = _cached_or_404()
    if missing: return missing
    from exporters import export_pdf as gen
    return send_file(io.BytesIO(gen(report)),
        mimetype="application/pdf", as_attachment=True,
        download_name="document_analysis_report.pdf")

@app.route("/export/word")
def export_word():
    report, missing = _cached_or_404()
    if missing: return missing
    from exporters import export_word as gen
    return send_file(io.BytesIO(gen(report)),
        mimetype="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        as_attachment=True, download_name="document_analysis_report.docx")

@app.route("/export/csv")
def export_csv():
    report, missing = _cached_or_404()
    if missing: return missing
    from exporters import export_csv as gen
    return send_file(io.BytesIO(gen(report)),
        mimetype="text/csv", as_attachment=True,
        download_name="document_analysis.csv")


if __name__ == "__main__":
    app.run(debug=True, port=5050)
