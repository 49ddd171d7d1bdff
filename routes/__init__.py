from flask import Blueprint, jsonify

from .auth import auth_bp
from .slots import slots_bp
from .appointments import appointments_bp
from .admin import admin_bp

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200
