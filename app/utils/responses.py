from flask import jsonify


def success_response(data=None, status=200, message=None):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def error_response(error, status=500, code=None, field=None):
    body = {"success": False, "error": error}
    if code:
        body["code"] = code
    if field:
        body["field"] = field
    return jsonify(body), status
