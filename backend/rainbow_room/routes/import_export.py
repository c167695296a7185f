# Overview: Flask API routes for bulk import and export; parses input and returns files or JSON.

from io import BytesIO

from flask import Blueprint, request, jsonify, current_app, send_file

from ..errors import ValidationError, http_status_for, error_body
from ..services import import_service, export_service


import_export_bp = Blueprint("import_export", __name__, url_prefix="/api")


@import_export_bp.post("/import")
def import_route():
    """
    Bulk import of item details.

    Accepts a multipart upload (field "file", .csv or .xlsx) or a JSON body
    {"rows": [{...}, ...]} with the export column names. Always 200 once the
    file could be read: per-row failures are reported in errors[].
    """
    try:
        upload = request.files.get("file")
        if upload is not None:
            rows = import_service.read_rows(upload.filename or "", upload.read())
        else:
            payload = request.get_json(silent=True)
            if not isinstance(payload, dict) or "rows" not in payload:
                raise ValidationError("Upload a file or send {\"rows\": [...]}")
            rows = payload["rows"]
        result = import_service.import_item_details(rows)
        return jsonify(result.to_dict()), 200
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to import item details")
        return jsonify({"error": "Internal server error"}), 500


@import_export_bp.get("/export")
def export_route():
    fmt = request.args.get("format", "csv")
    try:
        content, mimetype, filename = export_service.export_inventory(fmt)
    except ValueError as e:
        return jsonify(error_body(e)), http_status_for(e)
    except Exception:
        current_app.logger.exception("Failed to export inventory")
        return jsonify({"error": "Internal server error"}), 500

    return send_file(
        BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename,
    )
