from __future__ import annotations

from flask import Flask, g, jsonify

from ..common.http import json_body
from ..container import Container
from .guards import bearer_required


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="api_login")
    def login():
        data = json_body()
        result = container.auth_service.login(
            str(data.get("identifier", "")),
            str(data.get("secret", "")),
            str(data.get("role", "")),
        )
        claims = result.token.claims
        return jsonify({
            "access_token": result.token.token,
            "token_type": "bearer",
            "expires_at": claims.expires_at,
            "identity": result.identity.to_public_dict(),
        })

    @app.route("/api/auth/me", methods=["GET"], endpoint="api_me")
    @bearer_required(container)
    def me():
        return jsonify(g.claims.to_dict())

    @app.route("/api/auth/password", methods=["POST"], endpoint="api_change_password")
    @bearer_required(container)
    def change_password():
        data = json_body()
        container.identity_service.change_password(
            g.claims,
            current_secret=str(data.get("current_secret", "")),
            new_secret=str(data.get("new_secret", "")),
        )
        return jsonify({"ok": True})
