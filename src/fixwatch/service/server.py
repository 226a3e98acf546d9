"""Realtime publish channel: Flask app plus Socket.IO events for viewers."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from flask import Flask, jsonify
from flask_socketio import SocketIO, emit

from .annotations import AnnotationBoard
from .snapshot import Snapshot, SnapshotHolder

logger = logging.getLogger(__name__)

EVENT_INBOUND = "updateInbound"
EVENT_OUTBOUND = "updateOutbound"
EVENT_BOUNDARIES = "regionBoundaries"
# Single-feature KZWY boundary event read by older viewers.
EVENT_ZWY_BOUNDARY = "zwyBoundary"
ZWY_REGION_ID = "KZWY"
EVENT_ANNOTATIONS = "userInputs"
EVENT_UPDATE_FIELD = "updateField"


class BoardServer:
    """Owns the Flask app and Socket.IO server for one board."""

    def __init__(
        self,
        holder: SnapshotHolder,
        annotations: AnnotationBoard,
        *,
        boundaries: Optional[Dict[str, object]] = None,
        cors_allowed_origins: str | list = "*",
        async_mode: Optional[str] = None,
    ) -> None:
        self.holder = holder
        self.annotations = annotations
        self.boundaries = boundaries or {"type": "FeatureCollection", "features": []}
        self.zwy_boundary = next(
            (
                feature
                for feature in self.boundaries.get("features", [])
                if (feature.get("properties") or {}).get("id") == ZWY_REGION_ID
            ),
            None,
        )
        self.app = Flask(__name__)
        self.socketio = SocketIO(
            self.app,
            cors_allowed_origins=cors_allowed_origins,
            async_mode=async_mode,
        )
        self._register_routes()
        self._register_events()

    # ------------------------------------------------------------------ publish
    def publish(self, snapshot: Snapshot) -> None:
        """Broadcast a completed cycle to every viewer (full replace)."""
        self.socketio.emit(EVENT_INBOUND, snapshot.inbound_payload())
        self.socketio.emit(EVENT_OUTBOUND, snapshot.outbound_payload())

    # ---------------------------------------------------------------- handlers
    def _register_routes(self) -> None:
        @self.app.route("/api/snapshot")
        def get_snapshot():
            return jsonify(self.holder.current.to_payload())

    def _register_events(self) -> None:
        socketio = self.socketio

        @socketio.on("connect")
        def handle_connect(auth=None):
            logger.info("Viewer connected")
            snapshot = self.holder.current
            emit(EVENT_INBOUND, snapshot.inbound_payload())
            emit(EVENT_OUTBOUND, snapshot.outbound_payload())
            emit(EVENT_BOUNDARIES, self.boundaries)
            if self.zwy_boundary is not None:
                emit(EVENT_ZWY_BOUNDARY, self.zwy_boundary)
            emit(EVENT_ANNOTATIONS, self.annotations.snapshot())

        @socketio.on(EVENT_UPDATE_FIELD)
        def handle_update_field(payload):
            try:
                notes = self.annotations.apply_update(payload)
            except (TypeError, ValueError) as exc:
                logger.warning("Ignoring malformed annotation update: %s", exc)
                return
            socketio.emit(EVENT_ANNOTATIONS, notes)

        @socketio.on("disconnect")
        def handle_disconnect(*args):
            logger.info("Viewer disconnected")

    # -------------------------------------------------------------------- run
    def run(self, host: str, port: int) -> None:
        logger.info("Serving board on http://%s:%d", host, port)
        self.socketio.run(self.app, host=host, port=port, allow_unsafe_werkzeug=True)
