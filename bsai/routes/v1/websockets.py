import json
from typing import AsyncGenerator, Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from bsai.auth.session import Session
from bsai.client import ApiClient
from bsai.core.websockets.manager import rooms
from bsai.assessments.poller import AssessmentJobPoller, ProgressSnapshot
from bsai.assessments.service import AssessmentService
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


async def get_ws_assessment_service(
    token: Optional[str] = Query(None),
) -> AsyncGenerator[AssessmentService, None]:
    """Browsers cannot set headers on a WebSocket, so the token rides in the query string."""
    async with ApiClient(Session(token=token)) as client:
        yield AssessmentService(client)


def _event(kind: str, snapshot: ProgressSnapshot) -> str:
    return json.dumps({"type": kind, "snapshot": snapshot.model_dump(mode="json")})


@router.websocket("/assessments/{assessment_id}")
async def assessment_progress(
    websocket: WebSocket,
    assessment_id: str,
    service: AssessmentService = Depends(get_ws_assessment_service),
):
    """
    Live progress of one AI assessment job. Each socket follows the job with
    its own poller; closing the socket stops polling. Consultant review
    changes for the assessment are broadcast to the same room.
    """
    await rooms.connect(websocket, assessment_id)

    async def send_progress(snapshot: ProgressSnapshot):
        await websocket.send_text(_event("progress", snapshot))

    async def send_complete(snapshot: ProgressSnapshot):
        await websocket.send_text(_event("complete", snapshot))

    poller = AssessmentJobPoller(service, on_update=send_progress, on_complete=send_complete)
    poller.subscribe(assessment_id)
    try:
        while True:
            # Keep connection alive; clients have nothing to say
            data = await websocket.receive_text()
            logger.debug(f"📥 Received from {assessment_id}: {data}")
    except WebSocketDisconnect:
        logger.info(f"🔌 Client disconnected from assessment: {assessment_id}")
    except Exception as e:
        logger.error(f"❌ WebSocket error for assessment {assessment_id}: {type(e).__name__}: {e}")
    finally:
        poller.unsubscribe()
        rooms.disconnect(websocket, assessment_id)
