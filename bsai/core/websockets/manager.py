import json
import logging
from collections import defaultdict
from typing import Any, DefaultDict, Dict, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class AssessmentRooms:
    """Open progress sockets grouped by assessment id."""

    def __init__(self):
        self.rooms: DefaultDict[str, List[WebSocket]] = defaultdict(list)

    async def connect(self, websocket: WebSocket, assessment_id: str):
        await websocket.accept()
        self.rooms[assessment_id].append(websocket)
        logger.info(f"WebSocket joined assessment {assessment_id} ({self.room_size(assessment_id)} open)")

    def disconnect(self, websocket: WebSocket, assessment_id: str):
        sockets = self.rooms.get(assessment_id)
        if not sockets or websocket not in sockets:
            return
        sockets.remove(websocket)
        if not sockets:
            del self.rooms[assessment_id]
        logger.info(f"WebSocket left assessment {assessment_id}")

    def room_size(self, assessment_id: str) -> int:
        return len(self.rooms.get(assessment_id, []))

    async def broadcast_json(self, payload: Dict[str, Any], assessment_id: str):
        """Send `payload` to every socket following `assessment_id`; dead sockets are skipped."""
        message = json.dumps(payload)
        for websocket in list(self.rooms.get(assessment_id, [])):
            try:
                await websocket.send_text(message)
            except Exception as e:
                logger.error(f"Error broadcasting to assessment {assessment_id}: {e}")


rooms = AssessmentRooms()
