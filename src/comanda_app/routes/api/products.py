"""
Products API - Cardápio interno, categorias e imagens de produto
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from comanda_shared.error_catalog import message
from comanda_shared.jwt_middleware import login_required
from comanda_shared.logging_config import get_logger
from comanda_shared.schemas import CreateProductRequest, UpdateProductRequest
from comanda_shared.serializers import error_response, success_response

from comanda_app.extensions import current_store, get_services

products_bp = Blueprint("products", __name__)
logger = get_logger(__name__)


@products_bp.get("/products")
@login_required
def list_products():
    """
    Query params:
    - categoria: filtra por categoria (opcional)
    - disponivel: "true" para só os disponíveis (opcional)
    """
    category = request.args.get("categoria")
    only_available = request.args.get("disponivel", "").lower() == "true"

    products = current_store().products.values()
    if category:
        products = [product for product in products if product.categoria == category]
    if only_available:
        products = [product for product in products if product.disponivel]
    return jsonify(success_response(products))


@products_bp.get("/categories")
@login_required
def list_categories():
    return jsonify(success_response(current_store().categories.values()))


@products_bp.post("/products")
@login_required
def create_product():
    data = CreateProductRequest(**(request.get_json(silent=True) or {}))
    product = current_store().create_product(data.model_dump())
    return jsonify(success_response(product, message("product_created"))), HTTPStatus.CREATED


@products_bp.put("/products/<product_id>")
@login_required
def update_product(product_id: str):
    """Only the fields present in the body change; open items keep their price."""
    data = UpdateProductRequest(**(request.get_json(silent=True) or {}))
    product = current_store().update_product(product_id, data.model_dump(exclude_unset=True))
    return jsonify(success_response(product, message("product_updated")))


@products_bp.delete("/products/<product_id>")
@login_required
def delete_product(product_id: str):
    current_store().delete_product(product_id)
    return jsonify(success_response({"id": product_id}, message("product_deleted")))


@products_bp.post("/products/images")
@login_required
def upload_product_image():
    """
    Recebe uma imagem (multipart, campo ``image``) e devolve a URL pública.
    """
    storage = get_services().storage
    if storage is None:
        return jsonify(
            error_response("Armazenamento de imagens não configurado")
        ), HTTPStatus.SERVICE_UNAVAILABLE

    upload = request.files.get("image")
    if upload is None or not upload.filename:
        return jsonify(error_response("Nenhuma imagem enviada")), HTTPStatus.BAD_REQUEST

    url = storage.upload_product_image(
        current_store().restaurant_id,
        upload.filename,
        upload.read(),
        upload.mimetype or None,
    )
    return jsonify(success_response({"url": url})), HTTPStatus.CREATED
