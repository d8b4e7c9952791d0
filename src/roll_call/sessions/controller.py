from __future__ import annotations

import io

import qrcode
from flask import Flask, g, jsonify, send_file

from ..auth.gate import HOSTS
from ..auth.guards import bearer_required
from ..common.datetime_utils import now_local, parse_clock_time, parse_iso_date
from ..common.geo import parse_geofence
from ..common.http import json_body
from ..container import Container
from ..core.enums import Role
from .service import IssuedEvent


def _issued_json(issued: IssuedEvent) -> dict:
    return {
        "event": issued.event.to_dict(now=now_local()),
        "payload": issued.signed.payload,
        "issued_at_ms": issued.signed.issued_at_ms,
        "expires_at": issued.signed.expires_at.isoformat(),
    }


def register(app: Flask, container: Container) -> None:
    hosts_only = bearer_required(container, HOSTS)

    @app.route("/api/events", methods=["POST"], endpoint="api_create_event")
    @bearer_required(container, {Role.HOST})
    def create_event():
        data = json_body()
        issued = container.roll_call_service.create_event(
            g.claims,
            group_id=data.get("group_id"),
            scheduled_date=parse_iso_date(str(data.get("date", ""))),
            start_time=parse_clock_time(str(data.get("start_time", ""))),
            end_time=parse_clock_time(str(data.get("end_time", ""))),
            geofence=parse_geofence(data.get("geofence")),
        )
        return jsonify(_issued_json(issued)), 201

    @app.route("/api/events/<int:event_id>", methods=["GET"], endpoint="api_get_event")
    @hosts_only
    def get_event(event_id: int):
        event = container.roll_call_service.get_managed_event(g.claims, event_id)
        return jsonify(event.to_dict(now=now_local()))

    @app.route("/api/events/<int:event_id>/qr.png", methods=["GET"], endpoint="api_event_qr")
    @hosts_only
    def event_qr(event_id: int):
        event = container.roll_call_service.get_managed_event(g.claims, event_id)
        img = qrcode.make(event.signature_payload or "")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return send_file(buf, mimetype="image/png", download_name=f"event-{event.event_id}.png")

    @app.route("/api/events/<int:event_id>/close", methods=["POST"], endpoint="api_close_event")
    @hosts_only
    def close_event(event_id: int):
        event = container.roll_call_service.close_event(g.claims, event_id)
        return jsonify(event.to_dict(now=now_local()))

    @app.route("/api/events/<int:event_id>/rekey", methods=["POST"], endpoint="api_rekey_event")
    @hosts_only
    def rekey_event(event_id: int):
        issued = container.roll_call_service.rekey_event(g.claims, event_id)
        return jsonify(_issued_json(issued))
