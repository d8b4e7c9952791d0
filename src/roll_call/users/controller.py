from __future__ import annotations

from flask import Flask, g, jsonify

from ..auth.guards import bearer_required
from ..common.http import json_body
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import InvalidInput


def register(app: Flask, container: Container) -> None:
    admin_only = bearer_required(container, {Role.ADMINISTRATOR})

    @app.route("/api/identities", methods=["POST"], endpoint="api_register_identity")
    @admin_only
    def register_identity():
        data = json_body()
        try:
            role = Role(str(data.get("role", "")))
        except ValueError:
            raise InvalidInput("Unknown role")

        identity_id = container.identity_service.register(
            full_name=str(data.get("full_name", "")),
            registration_number=str(data.get("registration_number", "")),
            secret=str(data.get("secret", "")),
            role=role,
            email=data.get("email"),
            external_ref=data.get("external_ref"),
        )
        return jsonify({"id": identity_id}), 201

    @app.route("/api/identities/<int:identity_id>/deactivate", methods=["POST"], endpoint="api_deactivate_identity")
    @admin_only
    def deactivate_identity(identity_id: int):
        container.identity_service.deactivate(g.claims, identity_id)
        return jsonify({"ok": True})
