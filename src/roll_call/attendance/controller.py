from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..auth.gate import HOSTS, PARTICIPANTS
from ..auth.guards import bearer_required
from ..common.geo import parse_coordinates
from ..common.http import client_ip, json_body
from ..container import Container
from ..core.exceptions import MalformedPayload
from .model import SubmissionMeta


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance", methods=["POST"], endpoint="api_submit_attendance")
    @bearer_required(container, PARTICIPANTS)
    def submit_attendance():
        data = json_body()
        payload = data.get("payload")
        if not isinstance(payload, str) or not payload.strip():
            raise MalformedPayload()

        meta = SubmissionMeta(
            ip=client_ip(),
            device=(data.get("device") or request.headers.get("User-Agent") or None),
            location=parse_coordinates(data.get("location")),
        )
        outcome = container.attendance_recorder.submit(g.claims, payload, meta)
        return jsonify(outcome.to_dict()), 201

    @app.route(
        "/api/events/<int:event_id>/attendance/<int:participant_id>",
        methods=["PUT"],
        endpoint="api_override_attendance",
    )
    @bearer_required(container, HOSTS)
    def override_attendance(event_id: int, participant_id: int):
        data = json_body()
        record = container.attendance_recorder.override(
            g.claims,
            event_id=event_id,
            participant_id=participant_id,
            status=str(data.get("status", "")),
            note=data.get("note"),
        )
        return jsonify({"ok": True, "record": record.to_dict()})

    @app.route("/api/events/<int:event_id>/attendance", methods=["GET"], endpoint="api_list_attendance")
    @bearer_required(container, HOSTS)
    def list_attendance(event_id: int):
        records = container.attendance_recorder.list_for_event(g.claims, event_id)
        return jsonify([r.to_dict() for r in records])

    @app.route("/api/attendance/me", methods=["GET"], endpoint="api_my_attendance")
    @bearer_required(container, PARTICIPANTS)
    def my_attendance():
        entries = container.attendance_recorder.history_for(g.claims, limit=request.args.get("limit"))
        return jsonify([e.to_dict() for e in entries])

    @app.route("/api/attendance/me/summary", methods=["GET"], endpoint="api_my_summary")
    @bearer_required(container, PARTICIPANTS)
    def my_summary():
        return jsonify(container.attendance_recorder.summary_for(g.claims).to_dict())
