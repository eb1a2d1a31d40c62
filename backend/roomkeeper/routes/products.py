from flask import Blueprint, request, jsonify, current_app

from ..services import resource_store


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@products_bp.get("/")
def list_products_route():
    try:
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"
        products = resource_store.list_products(include_inactive=include_inactive)
        return jsonify({"products": [p.to_dict() for p in products], "count": len(products)})
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error", "code": "INTERNAL"}), 500
