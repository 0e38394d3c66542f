"""HTTP front end for the spreadsheet action handler.

Mirrors the Apps Script web-app contract: POST a JSON body (sent as
text/plain by the client) and get a tagged JSON response back. Errors are
reported in the body with HTTP 200, never as raw faults.
"""
from flask import Flask, jsonify, request

from office_bu.sheets.handler import SpreadsheetActionHandler


def create_app(handler: SpreadsheetActionHandler) -> Flask:
    app = Flask(__name__)
    app.config["SHEET_HANDLER"] = handler

    # --- ROUTES ---

    @app.route("/", methods=["GET"])
    def health():
        return jsonify({"status": "success", "message": "Office BU sheet endpoint is running"})

    @app.route("/", methods=["POST"])
    def do_post():
        body = request.get_data(as_text=True)
        result = app.config["SHEET_HANDLER"].handle_post(body)
        return jsonify(result)

    return app
