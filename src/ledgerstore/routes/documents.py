from flask import Blueprint, current_app, jsonify, request

bp = Blueprint("documents", __name__)


def _body() -> dict:
    return request.get_json(silent=True) or {}


@bp.route("", methods=["GET"])
def list_documents(table: str):
    """
    List documents, filtered by equality on any query-string fields.

    Query-string values are always bound as strings, so ?age=30 will not match
    a numeric age. Use POST /query for typed predicates.
    """
    documents = current_app.datasource.read({"table": table, "json": request.args.to_dict()})
    return jsonify(documents)


@bp.route("/query", methods=["POST"])
def query_documents(table: str):
    """List documents matching a JSON predicate; list values match by membership."""
    documents = current_app.datasource.read({"table": table, "json": _body()})
    return jsonify(documents)


@bp.route("", methods=["POST"])
def create_document(table: str):
    """Insert a new document."""
    document = current_app.datasource.create({"table": table, "json": _body()})
    return jsonify(document), 201


@bp.route("", methods=["PUT"])
def upsert_document(table: str):
    """Update the single document matching "where", or insert "document"."""
    data = _body()
    document = current_app.datasource.upsert(
        {"table": table, "document": data.get("document"), "where": data.get("where")}
    )
    return jsonify(document)


@bp.route("", methods=["PATCH"])
def update_documents(table: str):
    """Update every document matching "where"."""
    data = _body()
    result = current_app.datasource.update(
        {"table": table, "document": data.get("document"), "where": data.get("where")}
    )
    return jsonify(result)


@bp.route("/delete", methods=["POST"])
def delete_documents(table: str):
    """Delete every document matching the JSON predicate."""
    result = current_app.datasource.delete({"table": table, "json": _body()})
    return jsonify(result)


@bp.route("/<id>", methods=["GET"])
def get_document(table: str, id: str):
    """Get a document by id."""
    document = current_app.datasource.read_by_id({"table": table, "id": id})
    if not document:
        return jsonify({"error": "Document not found"}), 404
    return jsonify(document)


@bp.route("/<id>", methods=["PATCH"])
def update_document(table: str, id: str):
    result = current_app.datasource.update_by_id(
        {"table": table, "id": id, "document": _body()}
    )
    return jsonify(result)


@bp.route("/<id>", methods=["DELETE"])
def delete_document(table: str, id: str):
    result = current_app.datasource.delete_by_id({"table": table, "id": id})
    return jsonify(result)


@bp.route("/<id>/<path:field>", methods=["POST"])
def insert_into_document(table: str, id: str, field: str):
    """Append the JSON body into a nested field of a document."""
    document = current_app.datasource.insert_into_by_id(
        {"table": table, "id": id, "field": field, "document": _body()}
    )
    return jsonify(document), 201
